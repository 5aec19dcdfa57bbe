"""CLI client for triggering FleetSync runs and Wincpl imports."""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import httpx

DEFAULT_SERVER = "http://localhost:8000"
TOKEN_ENV_VAR = "FLEETSYNC_API_TOKEN"
_LOCALHOST_HOSTS = {"localhost", "127.0.0.1", "::1"}


class SyncClient:
    """Client for the FleetSync sync and import endpoints."""

    def __init__(
        self,
        server_url: str,
        token: str | None = None,
        *,
        timeout: float = 600.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.server_url = server_url.rstrip("/")
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self.client = httpx.Client(
            base_url=self.server_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self) -> SyncClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _post(self, path: str, **kwargs: Any) -> Any:
        resp = self.client.post(path, **kwargs)
        resp.raise_for_status()
        return resp.json()

    def sync(self, entity: str, triggered_by: str = "cli") -> dict[str, Any]:
        """Trigger ``drivers``, ``vehicles`` or ``all``."""
        result: dict[str, Any] = self._post(
            f"/api/sync/{entity}", json={"triggered_by": triggered_by}
        )
        return result

    def status(self) -> dict[str, Any]:
        resp = self.client.get("/api/sync/status")
        resp.raise_for_status()
        result: dict[str, Any] = resp.json()
        return result

    def history(self, limit: int = 10) -> list[dict[str, Any]]:
        resp = self.client.get("/api/sync/history", params={"limit": limit})
        resp.raise_for_status()
        result: list[dict[str, Any]] = resp.json()
        return result

    def import_wincpl(self, paths: list[Path]) -> dict[str, Any]:
        """Upload Wincpl XML files as one multipart import."""
        files = [
            ("files", (path.name, path.read_bytes(), "application/xml")) for path in paths
        ]
        result: dict[str, Any] = self._post("/api/vehicles/import/wincpl", files=files)
        return result


def validate_server_url(server_url: str, allow_insecure_http: bool = False) -> str:
    """Validate server URL and enforce HTTPS for non-localhost hosts by default."""
    normalized = server_url.strip().rstrip("/")
    parsed = urlparse(normalized)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError("Server URL must include scheme and host (e.g. https://example.com)")

    hostname = parsed.hostname
    if parsed.scheme == "http" and not allow_insecure_http and hostname not in _LOCALHOST_HOSTS:
        raise ValueError(
            "HTTPS is required for non-localhost servers. "
            "Use --allow-insecure-http only on trusted networks."
        )

    return normalized


def format_result(result: dict[str, Any]) -> str:
    """One-line summary of a sync result."""
    line = (
        f"{result['entity_type']}: {result['status']} "
        f"(synced={result['records_synced']}, created={result['records_created']}, "
        f"updated={result['records_updated']}, deleted={result['records_deleted']}, "
        f"{result['duration_ms']} ms)"
    )
    if result.get("error_message"):
        line += f" error: {result['error_message']}"
    return line


def _print_sync(entity: str, payload: dict[str, Any]) -> None:
    if entity == "all":
        for key in ("drivers", "vehicles"):
            print(format_result(payload[key]))
    else:
        print(format_result(payload))


def _print_status(status: dict[str, Any]) -> None:
    print("Sync Status:")
    for key in ("drivers", "vehicles"):
        entry = status.get(key)
        if entry is None:
            print(f"  {key:<9} never synchronised")
        else:
            print(
                f"  {key:<9} {entry['last_sync_status']} at {entry['last_sync_at']}"
                f" ({entry['records_count']} records)"
            )
    current = status.get("current_sync")
    if current:
        print(
            f"  Running:  {current['entity_type']} #{current['run_id']}"
            f" since {current['started_at']}"
        )


def _print_history(runs: list[dict[str, Any]]) -> None:
    for run in runs:
        line = (
            f"#{run['id']:<5} {run['entity_type']:<9} {run['status']:<12} "
            f"{run['started_at']}  synced={run['records_synced']}"
        )
        if run.get("error_message"):
            line += f"  error: {run['error_message']}"
        print(line)


def _print_import(result: dict[str, Any]) -> None:
    print(
        f"Wincpl import: {result['files_processed']} files, "
        f"{result['vehicles_imported']} vehicles created, "
        f"{result['vehicles_updated']} updated, "
        f"{result['absences_imported']} absences"
    )
    for error in result.get("errors", []):
        print(f"  Error: {error}")


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="fleetsync-sync",
        description="Trigger FleetSync synchronisations and Wincpl imports",
    )
    parser.add_argument(
        "--server",
        "-s",
        default=os.environ.get("FLEETSYNC_SERVER", DEFAULT_SERVER),
        help=f"Server URL (default: {DEFAULT_SERVER})",
    )
    parser.add_argument(
        "--allow-insecure-http",
        action="store_true",
        help="Allow http:// server URLs for non-localhost hosts",
    )
    parser.add_argument("--token", help=f"API bearer token (default: ${TOKEN_ENV_VAR})")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("drivers", help="Synchronise drivers from Factorial")
    subparsers.add_parser("vehicles", help="Synchronise vehicles from MyRentACar")
    subparsers.add_parser("all", help="Synchronise drivers and vehicles")
    subparsers.add_parser("status", help="Show the last run per entity type")
    history_parser = subparsers.add_parser("history", help="List recent runs")
    history_parser.add_argument("--limit", type=int, default=10)
    import_parser = subparsers.add_parser("import-wincpl", help="Import Wincpl XML files")
    import_parser.add_argument("files", nargs="+", type=Path)

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        sys.exit(1)

    try:
        server_url = validate_server_url(args.server, args.allow_insecure_http)
    except ValueError as exc:
        print(f"Error: {exc}")
        sys.exit(1)

    token = args.token or os.environ.get(TOKEN_ENV_VAR)

    with SyncClient(server_url, token) as client:
        try:
            if args.command in {"drivers", "vehicles", "all"}:
                _print_sync(args.command, client.sync(args.command))
            elif args.command == "status":
                _print_status(client.status())
            elif args.command == "history":
                _print_history(client.history(args.limit))
            elif args.command == "import-wincpl":
                missing = [str(path) for path in args.files if not path.is_file()]
                if missing:
                    print(f"Error: file not found: {', '.join(missing)}")
                    sys.exit(1)
                _print_import(client.import_wincpl(args.files))
        except httpx.HTTPStatusError as exc:
            print(f"Error: server answered {exc.response.status_code}")
            try:
                print(json.dumps(exc.response.json(), indent=2))
            except ValueError:
                print(exc.response.text)
            sys.exit(1)
        except httpx.HTTPError as exc:
            print(f"Error: cannot reach {server_url}: {exc}")
            sys.exit(1)


if __name__ == "__main__":
    main()
