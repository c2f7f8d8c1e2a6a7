"""
SFTP-FileDesk - Main Entry Point

Command-line front end for the remote file manager. Each invocation opens
one SessionManager, runs a single command through RemoteFileManager and
disconnects on the way out.
"""

import argparse
import logging
import os
import sys

from .config import load_config
from .errors import FileManagerError
from .logger import setup_logging
from .operations import OperationResult, RemoteFileManager
from .paths import basename
from .session import SessionManager
from .staging import staged_temp_file

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="sftp-filedesk",
        description="SFTP-FileDesk - Manage files on a remote SFTP server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  sftp-filedesk --host myserver.com --user deploy ls /var/www
  sftp-filedesk --config filedesk.ini put /uploads report.pdf notes.txt
  sftp-filedesk --config filedesk.ini compress /srv/site /srv/site.zip
  sftp-filedesk --config filedesk.ini getdir /srv/site backup.zip
        """,
    )
    parser.add_argument("--config", help="Path to configuration file")
    parser.add_argument("--host", help="SFTP host")
    parser.add_argument("--port", type=int, help="SFTP port")
    parser.add_argument("--user", help="SSH username")
    parser.add_argument("--password", help="SSH password")
    parser.add_argument("--key-file", help="Path to SSH private key")
    parser.add_argument("--key-passphrase", help="Passphrase for encrypted SSH key")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    ls_parser = subparsers.add_parser("ls", help="List a remote directory")
    ls_parser.add_argument("path", nargs="?", default="/")

    stat_parser = subparsers.add_parser("stat", help="Show metadata for a remote path")
    stat_parser.add_argument("path")

    mkdir_parser = subparsers.add_parser("mkdir", help="Create a remote directory (with parents)")
    mkdir_parser.add_argument("path")

    rm_parser = subparsers.add_parser("rm", help="Delete a remote file or directory")
    rm_parser.add_argument("path")

    put_parser = subparsers.add_parser("put", help="Upload local files into a remote directory")
    put_parser.add_argument("remote_dir")
    put_parser.add_argument("local_files", nargs="+")

    get_parser = subparsers.add_parser("get", help="Download a remote file")
    get_parser.add_argument("remote_path")
    get_parser.add_argument("local_path", nargs="?")

    getdir_parser = subparsers.add_parser("getdir", help="Download a remote directory as a ZIP archive")
    getdir_parser.add_argument("remote_dir")
    getdir_parser.add_argument("local_path", nargs="?")

    for name, help_text in (
        ("mv", "Move a remote file or directory"),
        ("rename", "Rename a remote file or directory"),
        ("cp", "Copy a remote file"),
        ("compress", "Zip a remote file or directory"),
        ("extract", "Unzip a remote archive into a directory"),
    ):
        pair_parser = subparsers.add_parser(name, help=help_text)
        pair_parser.add_argument("source")
        pair_parser.add_argument("target")

    return parser.parse_args(argv)


def print_result(result: OperationResult) -> int:
    if result.success:
        print(f"[OK] {result.message}")
        return 0
    print(f"[ERROR] {result.message}")
    return 1


def print_listing(result: OperationResult) -> int:
    if not result.success:
        return print_result(result)
    for entry in result.data:
        kind = "d" if entry.is_dir else "-"
        modified = entry.modify_time.strftime("%Y-%m-%d %H:%M")
        print(f"{kind}{entry.rights}  {entry.size:>12}  {modified}  {entry.name}")
    return 0


def _download_into_place(local_path: str, fetch) -> None:
    """Run fetch(temp_path) on a temp file beside local_path, then move it into place.

    The temp file never outlives the call, whether the download succeeds
    or not.
    """
    with staged_temp_file(os.path.dirname(local_path), suffix=".part") as temp_path:
        fetch(temp_path)
        os.replace(temp_path, local_path)


def cmd_get(manager: RemoteFileManager, args) -> int:
    """Download one remote file."""
    local_path = os.path.abspath(args.local_path or basename(args.remote_path))
    try:
        _download_into_place(
            local_path, lambda temp_path: manager.download_file(args.remote_path, temp_path)
        )
    except FileManagerError as e:
        print(f"[ERROR] Error downloading file: {e}")
        return 1
    except OSError as e:
        print(f"[ERROR] Could not write {local_path}: {e}")
        return 1
    print(f"[OK] Downloaded {args.remote_path} to {local_path}")
    return 0


def cmd_getdir(manager: RemoteFileManager, args) -> int:
    """Download a remote directory as a ZIP archive."""
    default_name = (basename(args.remote_dir).strip("/") or "root") + ".zip"
    local_path = os.path.abspath(args.local_path or default_name)
    try:
        _download_into_place(
            local_path,
            lambda temp_path: manager.download_directory(args.remote_dir, temp_path).unwrap(),
        )
    except FileManagerError as e:
        print(f"[ERROR] Error downloading directory: {e}")
        return 1
    except OSError as e:
        print(f"[ERROR] Could not write {local_path}: {e}")
        return 1
    print(f"[OK] Downloaded {args.remote_dir} to {local_path}")
    return 0


def run_command(manager: RemoteFileManager, args) -> int:
    """Dispatch one parsed command to the file manager."""
    if args.command == "ls":
        return print_listing(manager.list_files(args.path))
    elif args.command == "stat":
        try:
            stats = manager.get_file_stats(args.path)
        except FileManagerError as e:
            print(f"[ERROR] Error getting file info: {e}")
            return 1
        for key, value in stats.to_dict().items():
            print(f"{key:>14}: {value}")
        return 0
    elif args.command == "mkdir":
        return print_result(manager.create_directory(args.path))
    elif args.command == "rm":
        return print_result(manager.delete_file(args.path))
    elif args.command == "put":
        result = manager.upload_files(args.remote_dir, args.local_files)
        for item in result.data or []:
            status = "OK" if item["success"] else "ERROR"
            print(f"  [{status}] {item['filename']}: {item['message']}")
        return print_result(result)
    elif args.command == "get":
        return cmd_get(manager, args)
    elif args.command == "getdir":
        return cmd_getdir(manager, args)
    elif args.command == "mv":
        return print_result(manager.move_file(args.source, args.target))
    elif args.command == "rename":
        return print_result(manager.rename_file(args.source, args.target))
    elif args.command == "cp":
        return print_result(manager.copy_file(args.source, args.target))
    elif args.command == "compress":
        return print_result(manager.compress_file(args.source, args.target))
    elif args.command == "extract":
        return print_result(manager.extract_file(args.source, args.target))
    print(f"[ERROR] Unknown command: {args.command}")
    return 1


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)
    if not args.command:
        print("Usage: sftp-filedesk [options] <command> [args]")
        print("Run 'sftp-filedesk --help' for the list of commands.")
        return 1

    try:
        config = load_config(
            config_path=args.config,
            host=args.host,
            port=args.port,
            username=args.user,
            password=args.password,
            key_file=args.key_file,
            key_passphrase=args.key_passphrase,
            debug=args.verbose,
        )
    except ValueError as e:
        print(f"[ERROR] Configuration error: {e}")
        return 1
    except FileNotFoundError as e:
        print(f"[ERROR] {e}")
        return 1

    setup_logging(config.logging)
    from . import __version__

    logger.info("Starting SFTP-FileDesk v%s", __version__)

    sessions = SessionManager(config.ssh, config.connection)
    try:
        manager = RemoteFileManager(sessions, config.staging)
        return run_command(manager, args)
    except KeyboardInterrupt:
        print()
        logger.info("Received interrupt, stopping...")
        return 1
    finally:
        logger.info("Disconnecting from server...")
        sessions.disconnect()


if __name__ == "__main__":
    sys.exit(main() or 0)
