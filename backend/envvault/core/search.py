from typing import List, Optional, Sequence

from envvault.models import SecretRecord


def match_rank(key: str, query: str) -> Optional[int]:
    """
    0 for keys starting with the query, 1 for other substring hits, None for misses.
    Only the key is casefolded here; callers fold the query once per search.
    """
    folded = key.casefold()
    if folded.startswith(query):
        return 0
    if query in folded:
        return 1
    return None


def search_records(
    records: Sequence[SecretRecord],
    query: str,
    limit: Optional[int] = None,
) -> List[SecretRecord]:
    """
    Scan the snapshot in insertion order and rank hits on the key only; values
    never take part in matching. An empty query returns every record.
    """
    if not query:
        hits = list(records)
    else:
        needle = query.casefold()
        ranked = []
        for position, record in enumerate(records):
            rank = match_rank(record.key, needle)
            if rank is not None:
                ranked.append((rank, position, record))
        ranked.sort(key=lambda item: (item[0], item[1]))
        hits = [record for _, _, record in ranked]
    if limit is not None and limit >= 0:
        hits = hits[:limit]
    return hits
