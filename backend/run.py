import uvicorn
import argparse
import os
import threading
import time


def _parent_watcher():
    """
    Best-effort guard: if the desktop shell dies (crash/force-quit), exit the
    backend to avoid orphaned sidecars holding the port and the vault store.
    """
    ppid = os.getppid()
    while True:
        try:
            # On Unix, kill(pid, 0) checks existence. If parent becomes init (ppid == 1), exit.
            if ppid == 1:
                os._exit(0)
            os.kill(ppid, 0)
        except OSError:
            os._exit(0)
        time.sleep(3)

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="EnvVault core sidecar")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Host interface to bind")
    parser.add_argument("--port", type=int, default=8334, help="Port to run the backend on")
    parser.add_argument("--data-dir", type=str, default=None, help="Directory for the vault store")
    parser.add_argument("--envvault-file", type=str, default=None, help="Shell sync file (default ~/.envvault)")
    parser.add_argument("--log-level", type=str, default=None, help="DEBUG, INFO, WARNING or ERROR")
    parser.add_argument("--no-shell-hooks", action="store_true", help="Do not touch ~/.zshrc / ~/.bashrc")

    args = parser.parse_args()

    # Settings are read from the environment when the app is imported
    if args.data_dir:
        os.environ["ENVVAULT_DATA_DIR"] = os.path.abspath(os.path.expanduser(args.data_dir))
    if args.envvault_file:
        os.environ["ENVVAULT_FILE"] = args.envvault_file
    if args.log_level:
        os.environ["ENVVAULT_LOG_LEVEL"] = args.log_level
    if args.no_shell_hooks:
        os.environ["ENVVAULT_SHELL_HOOKS"] = "0"

    from envvault.config import Settings
    from envvault.logging_config import setup_logging
    from envvault.main import app

    settings = Settings.from_env()
    setup_logging(settings.log_level)

    threading.Thread(target=_parent_watcher, daemon=True).start()

    print(f"🔐 Starting EnvVault core on http://{args.host}:{args.port}")
    print(f"📂 Data dir: {settings.data_dir}")

    # Pass the app object directly so frozen builds bundle it; reload never works there
    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        reload=False,
        log_config=None,
    )
