"""Copy local backup documents to remote storage.

Documents written while the remote backend was unreachable only exist on the
local disk. This script uploads every such document that is missing remotely.
Local files are never deleted.

Usage:
    python -m docstore.scripts.sync_local
    python -m docstore.scripts.sync_local --dry-run
"""
from __future__ import annotations

import sys

from rich.console import Console
from rich.table import Table

from docstore.constants import guess_content_type
from docstore.errors import StorageError
from docstore.logging import configure_logging
from docstore.storage.factory import get_local_storage, get_remote_storage
from docstore.storage.planner import plan_upload

console = Console()


def main() -> None:
    dry_run = "--dry-run" in sys.argv

    configure_logging()

    local = get_local_storage()
    try:
        remote = get_remote_storage()
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        sys.exit(1)

    paths = list(local.iter_paths())
    if not paths:
        console.print("[yellow]No local documents found.[/yellow]")
        return

    try:
        remote.ensure_container()
    except StorageError as exc:
        console.print(f"[red]Remote storage unavailable: {exc}[/red]")
        sys.exit(1)

    table = Table(title="Local documents")
    table.add_column("Path", style="bold")
    table.add_column("Size", justify="right")
    table.add_column("Status")

    uploaded = skipped = failed = 0

    for key in paths:
        try:
            if remote.exists(key):
                skipped += 1
                table.add_row(key, "-", "[dim]already remote[/dim]")
                continue

            stored = local.get(key)
            if dry_run:
                table.add_row(key, str(stored.size), "[yellow]pending[/yellow]")
                continue

            remote.upload(key, stored.content, guess_content_type(key), plan_upload(stored.size))
            uploaded += 1
            table.add_row(key, str(stored.size), "[green]✓ uploaded[/green]")
        except StorageError as exc:
            failed += 1
            table.add_row(key, "-", f"[red]✗ {exc.message}[/red]")

    console.print(table)
    console.print(f"\nTotal documents found: [bold]{len(paths)}[/bold]")
    console.print(f"Already remote: {skipped}")

    if dry_run:
        console.print("\n[yellow]--dry-run: no documents were uploaded.[/yellow]")
        return

    console.print(f"Uploaded: {uploaded}")
    console.print(f"Failed: {failed}")

    if failed:
        console.print("\n[red bold]Some documents could not be uploaded. Check the logs for details.[/red bold]")
        sys.exit(1)
    console.print("\n[green bold]Local backups are in sync with remote storage.[/green bold]")


if __name__ == "__main__":
    main()
