import logging
from typing import List, Optional

from envvault.config import Settings
from envvault.models import ImportResult, Secret
from envvault.core import env_codec
from envvault.core.shell_sync import ShellSync, SyncIOError
from envvault.core.storage import StorageEngine, StorageUnavailable

logger = logging.getLogger(__name__)


class VaultService:
    """
    The operations the desktop shell calls. This is the outermost boundary: storage
    failures are logged here and degrade to empty results or False instead of escaping
    to the UI. Every successful mutation is followed by a shell sync.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or Settings.from_env()
        self.storage = StorageEngine(self.settings.data_dir)
        self.shell = ShellSync(self.settings.envvault_file, install_hooks=self.settings.shell_hooks)

    # --- Lifecycle ---
    def init(self) -> bool:
        try:
            self.storage.init()
        except StorageUnavailable as ex:
            logger.error("Vault storage unavailable: %s", ex)
            return False
        return True

    def close(self):
        self.storage.close()

    # --- Reads ---
    def get_all_secrets(self) -> List[Secret]:
        try:
            return self.storage.get_all()
        except StorageUnavailable as ex:
            logger.error("Listing secrets failed: %s", ex)
            return []

    def search_vault(self, query: str, limit: Optional[int] = None) -> List[Secret]:
        try:
            return self.storage.search(query, limit=limit)
        except StorageUnavailable as ex:
            logger.error("Search failed: %s", ex)
            return []

    def get_full_secret(self, secret_id: int) -> Optional[str]:
        try:
            return self.storage.get_full(secret_id)
        except StorageUnavailable as ex:
            logger.error("Reading secret id=%d failed: %s", secret_id, ex)
            return None

    # --- Mutations ---
    def add_secret(self, key: str, value: str) -> bool:
        """
        Replace-on-conflict add. Raises ValidationError for an empty key so the API
        can answer 400; storage failures degrade to False.
        """
        try:
            self.storage.add(key, value)
        except StorageUnavailable as ex:
            logger.error("Adding secret %s failed: %s", key, ex)
            return False
        self.sync_to_shell()
        return True

    def update_secret(self, secret_id: int, value: str) -> bool:
        try:
            updated = self.storage.update(secret_id, value)
        except StorageUnavailable as ex:
            logger.error("Updating secret id=%d failed: %s", secret_id, ex)
            return False
        if updated:
            self.sync_to_shell()
        return updated

    def delete_secret(self, secret_id: int) -> bool:
        try:
            deleted = self.storage.delete(secret_id)
        except StorageUnavailable as ex:
            logger.error("Deleting secret id=%d failed: %s", secret_id, ex)
            return False
        if deleted:
            self.sync_to_shell()
        return deleted

    def import_env(self, text: str) -> ImportResult:
        decoded = env_codec.decode(text or "")
        result = ImportResult(skipped=decoded.skipped)
        for key, value in decoded.pairs:
            try:
                self.storage.add(key, value)
            except StorageUnavailable as ex:
                logger.error("Import stopped after %d entries: %s", result.applied, ex)
                break
            result.applied += 1
        if decoded.skipped:
            logger.warning("Import skipped %d malformed line(s)", decoded.skipped)
        if result.applied:
            self.sync_to_shell()
        logger.info("Imported %d entries", result.applied)
        return result

    def export_env(self) -> str:
        try:
            return env_codec.encode(self.storage.pairs())
        except StorageUnavailable as ex:
            logger.error("Export failed: %s", ex)
            return ""

    # --- Shell sync ---
    def sync_to_shell(self) -> bool:
        try:
            self.shell.write(self.storage.pairs)
        except StorageUnavailable as ex:
            logger.error("Shell sync skipped, storage unavailable: %s", ex)
            return False
        except SyncIOError as ex:
            # The vault stays the source of truth; nothing is rolled back
            logger.error("Shell sync failed: %s", ex)
            return False
        return True

    def get_envvault_path(self) -> str:
        return str(self.shell.path)


vault = VaultService()


def get_vault() -> VaultService:
    return vault


def swap_vault(settings: Settings):
    """
    Replace the global vault instance, e.g. after the data directory changed.
    """
    global vault
    vault.close()
    vault = VaultService(settings)
    return vault
