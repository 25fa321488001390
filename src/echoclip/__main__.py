import argparse
import logging
import shutil
import subprocess
import sys
from pathlib import Path
from xml.sax.saxutils import escape

from echoclip.config import DATA_DIR, HISTORY_PATH, IMAGE_DIR, LOG_PATH, PREVIEW_LENGTH, RETENTION_FOREVER, SETTINGS_PATH
from echoclip.utils import ensure_dirs

PLIST_LABEL = "com.echoclip.app"
PLIST_NAME = f"{PLIST_LABEL}.plist"
LAUNCHAGENT_DIR = Path.home() / "Library" / "LaunchAgents"
PLIST_PATH = LAUNCHAGENT_DIR / PLIST_NAME


def get_program_arguments() -> list[str]:
    """Get the command line that starts Echo."""
    echoclip_path = shutil.which("echoclip")
    if echoclip_path:
        return [echoclip_path]
    # Fallback to current Python module
    return [sys.executable, "-m", "echoclip"]


def create_plist(program_arguments: list[str]) -> str:
    """Generate the LaunchAgent plist content."""
    arguments = "\n".join(f"        <string>{escape(arg)}</string>" for arg in program_arguments)
    log_path = escape(str(LOG_PATH))
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN" "http://www.apple.com/DTDs/PropertyList-1.0.dtd">
<plist version="1.0">
<dict>
    <key>Label</key>
    <string>{PLIST_LABEL}</string>
    <key>ProgramArguments</key>
    <array>
{arguments}
    </array>
    <key>RunAtLoad</key>
    <true/>
    <key>KeepAlive</key>
    <true/>
    <key>StandardOutPath</key>
    <string>{log_path}</string>
    <key>StandardErrorPath</key>
    <string>{log_path}</string>
</dict>
</plist>
"""


def _launchctl(*args: str) -> subprocess.CompletedProcess:
    return subprocess.run(["launchctl", *args], capture_output=True, text=True)


def install_launchagent() -> int:
    """Write the LaunchAgent plist and load it so Echo starts at login."""
    ensure_dirs()
    LAUNCHAGENT_DIR.mkdir(parents=True, exist_ok=True)

    if PLIST_PATH.exists():
        # launchctl keeps the old definition until it is unloaded
        _launchctl("unload", str(PLIST_PATH))

    program_arguments = get_program_arguments()
    PLIST_PATH.write_text(create_plist(program_arguments))

    result = _launchctl("load", str(PLIST_PATH))
    if result.returncode != 0:
        print(f"launchctl could not load {PLIST_PATH}: {result.stderr.strip()}")
        return 1

    print(f"Echo will start at login ({' '.join(program_arguments)}).")
    print(f"Log file: {LOG_PATH}")
    return 0


def uninstall_launchagent() -> int:
    """Unload and delete the LaunchAgent plist."""
    if PLIST_PATH.exists():
        _launchctl("unload", str(PLIST_PATH))
        PLIST_PATH.unlink()
        print(f"Removed {PLIST_PATH}; Echo no longer starts at login.")
    else:
        print("Echo is not set to start at login.")
    return 0


def check_status() -> int:
    """Report whether the LaunchAgent is loaded; exit status 1 when it is not."""
    loaded = _launchctl("list", PLIST_LABEL).returncode == 0
    installed = PLIST_PATH.exists()

    if loaded:
        print(f"Echo is running ({PLIST_LABEL}).")
    elif installed:
        print(f"Echo is installed at {PLIST_PATH} but not loaded.")
    else:
        print("Echo is not installed; run `echoclip install` to start it at login.")
    return 0 if loaded else 1


def _open_store():
    from echoclip.history import HistoryStore
    from echoclip.storage import HistoryStorage

    return HistoryStore(HistoryStorage(HISTORY_PATH, IMAGE_DIR))


def list_history(search: str = "", limit: int = 20) -> int:
    """Print the stored history as the menu would order it."""
    from echoclip.menu import entry_title
    from echoclip.query import project

    items = project(_open_store().items, search)
    if not items:
        print("No clipboard history." if not search else f'No results for "{search}".')
        return 0

    for item in items[:limit]:
        marker = "*" if item.pinned else " "
        stamp = item.created_at.astimezone().strftime("%Y-%m-%d %H:%M")
        source = f"  ({item.source_app})" if item.source_app else ""
        print(f"{marker} {stamp}  {entry_title(item, PREVIEW_LENGTH)}{source}")
    if len(items) > limit:
        print(f"... {len(items) - limit} more")
    return 0


def clear_history() -> int:
    removed = _open_store().clear_unpinned()
    print(f"Removed {removed} unpinned entries.")
    return 0


def prune_history() -> int:
    from echoclip.settings import load_settings

    settings = load_settings(SETTINGS_PATH)
    if settings.retention_days == RETENTION_FOREVER:
        print("Retention is set to forever; nothing to prune.")
        return 0
    removed = _open_store().prune_expired(settings.retention_days)
    print(f"Removed {removed} entries older than {settings.retention_days} days.")
    return 0


def run_app():
    """Run the Echo menu-bar application."""
    ensure_dirs()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(LOG_PATH),
            logging.StreamHandler(sys.stderr),
        ],
    )

    from echoclip.app import EchoApp

    app = EchoApp()
    app.run()


def main():
    parser = argparse.ArgumentParser(
        description="Echo - Clipboard history manager for macOS",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Commands:
  (none)      Run Echo in the menu bar
  install     Install as LaunchAgent (runs on login)
  uninstall   Remove LaunchAgent
  status      Check if Echo is running
  list        Print clipboard history
  clear       Remove all unpinned entries
  prune       Remove entries older than the retention window

Data directory: {DATA_DIR}
""",
    )
    parser.add_argument(
        "command",
        nargs="?",
        choices=["install", "uninstall", "status", "list", "clear", "prune"],
        help="Command to run",
    )
    parser.add_argument("--search", default="", help="Filter for the list command")
    parser.add_argument("--limit", type=int, default=20, help="Maximum entries for the list command")

    args = parser.parse_args()

    if args.command == "install":
        sys.exit(install_launchagent())
    elif args.command == "uninstall":
        sys.exit(uninstall_launchagent())
    elif args.command == "status":
        sys.exit(check_status())
    elif args.command == "list":
        sys.exit(list_history(args.search, args.limit))
    elif args.command == "clear":
        sys.exit(clear_history())
    elif args.command == "prune":
        sys.exit(prune_history())
    else:
        run_app()


if __name__ == "__main__":
    main()
