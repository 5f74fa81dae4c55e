import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Callable, Iterable, List, Sequence, Tuple

from envvault.core.env_codec import encode

logger = logging.getLogger(__name__)

DEFAULT_ENVVAULT_FILE = "~/.envvault"
SHELL_PROFILES = (".zshrc", ".bashrc", ".bash_profile")
HOOK_MARKER = "# EnvVault secrets"


class SyncIOError(Exception):
    """Raised when the shell sync file cannot be written."""


def resolve_envvault_path(path: str | Path | None = None) -> Path:
    return Path(os.path.expanduser(str(path or DEFAULT_ENVVAULT_FILE))).resolve()


def _shell_reference(path: Path, home: Path) -> str:
    try:
        return "~/" + path.relative_to(home).as_posix()
    except ValueError:
        return path.as_posix()


class ShellSync:
    """
    Regenerates the shell-visible mirror of the vault. The file is rewritten whole on
    every sync, so it converges no matter what happened to it in between.
    """

    def __init__(self, envvault_file: str | Path | None = None, install_hooks: bool = True, home: str | Path | None = None):
        self.home = (Path(home).expanduser() if home else Path.home()).resolve()
        self.path = resolve_envvault_path(envvault_file)
        self.install_hooks = install_hooks
        self._lock = threading.Lock()

    def render(self, pairs: Iterable[Tuple[str, str]]) -> str:
        return encode(pairs)

    def write(self, source: Callable[[], Sequence[Tuple[str, str]]]):
        """
        Read the vault through `source` and write it out. The read happens under the
        same lock as the write, so the last sync to finish always carries the newest
        snapshot and a slow sync can never put back a secret deleted meanwhile.
        """
        with self._lock:
            pairs = source()
            content = self.render(pairs)
            try:
                self._atomic_write_text(self.path, content)
            except OSError as exc:
                raise SyncIOError(f"cannot write {self.path}: {exc}") from exc
        logger.info("Synced %d secrets to %s", len(pairs), self.path)
        if self.install_hooks:
            self.ensure_profile_hooks()

    def _atomic_write_text(self, target: Path, content: str):
        target.parent.mkdir(parents=True, exist_ok=True)
        # Same directory as the target so the rename never crosses filesystems
        fd, tmp = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
        try:
            os.chmod(tmp, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, target)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    # --- Shell profile hooks ---
    def hook_block(self) -> str:
        # The file is sourced, not parsed: encode_value single-quotes shell-active values,
        # except values that also contain a single quote
        ref = _shell_reference(self.path, self.home)
        return f"\n{HOOK_MARKER}\n[ -f {ref} ] && set -a && . {ref} && set +a\n"

    def _references_file(self, content: str) -> bool:
        ref = _shell_reference(self.path, self.home)
        return any(
            needle in content
            for needle in (f"source {ref}", f". {ref}", f"source {self.path}", f". {self.path}")
        )

    def ensure_profile_hooks(self) -> List[Path]:
        """
        Append the source block to every existing profile that does not load the file yet.
        Profiles are never created. Returns the profiles that were changed.
        """
        changed = []
        for name in SHELL_PROFILES:
            profile = self.home / name
            if not profile.exists():
                continue
            try:
                content = profile.read_text(encoding="utf-8")
                if self._references_file(content):
                    continue
                with open(profile, "a", encoding="utf-8") as f:
                    f.write(self.hook_block())
                changed.append(profile)
                logger.info("Added EnvVault source line to %s", profile)
            except (OSError, UnicodeDecodeError) as exc:
                # Hooks are a convenience; the sync itself already succeeded
                logger.warning("Could not update shell profile %s: %s", profile, exc)
        return changed
