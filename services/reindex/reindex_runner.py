"""Reindex runner entry point.

Re-indexes the seed documents through the public API of a running server.

Usage:
    python -m services.reindex.reindex_runner                     # http://localhost:8000
    python -m services.reindex.reindex_runner --clean             # delete seed ids first
    python -m services.reindex.reindex_runner --url http://127.0.0.1:8000 --seed docs.json
"""

import asyncio
import sys
from pathlib import Path
from urllib.parse import urlparse

import click

from services.reindex.ReindexService import ReindexService, ReindexSummary, load_seed_documents
from services.reindex.SearchApiClient import SearchApiClient
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging

DEFAULT_SEED_PATH = Path(__file__).parent / "seed-data.json"
DEFAULT_ALLOWED_HOSTS = ["localhost", "127.0.0.1"]


def validate_url(url: str, allowed_hosts: list[str]) -> str:
    """Only allow http(s) URLs on an allowlisted host.

    Raises:
        click.BadParameter: If the scheme or host is not allowed.
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise click.BadParameter(f"URL must be an absolute http: or https: URL, got '{url}'", param_hint="--url")
    if parsed.hostname not in allowed_hosts:
        raise click.BadParameter(
            f"URL host '{parsed.hostname}' not in allowlist ({', '.join(allowed_hosts)})",
            param_hint="--url",
        )
    return url.rstrip("/")


async def run(config: HelperConfig, api_client: SearchApiClient, documents: list[dict], clean: bool, concurrency: int) -> ReindexSummary:
    await api_client.boot()
    try:
        service = ReindexService(helper_config=config, api_client=api_client, concurrency=concurrency)
        return await service.do_reindex(documents, clean=clean)
    finally:
        await api_client.close()


@click.command()
@click.option("--clean", is_flag=True, help="Delete existing documents before re-indexing.")
@click.option("--url", default=None, help="API base URL (default: REINDEX_API_BASE_URL or http://localhost:8000).")
@click.option(
    "--seed",
    "seed_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_SEED_PATH,
    show_default=True,
    help="JSON array of {id, text, metadata} documents.",
)
@click.option("--concurrency", type=click.IntRange(min=1), default=1, show_default=True, help="Documents in flight at once.")
def main(clean: bool, url: str | None, seed_path: Path, concurrency: int) -> None:
    """Re-index seed documents through POST /v1/documents."""
    logger = setup_logging()
    config = HelperConfig(logger=logger)

    allowed_hosts = config.get_list_val("REINDEX_ALLOWED_HOSTS", default=DEFAULT_ALLOWED_HOSTS)
    base_url = validate_url(url or config.get_string_val("REINDEX_API_BASE_URL", default="http://localhost:8000"), allowed_hosts)

    try:
        api_client = SearchApiClient(helper_config=config, base_url=base_url)
        documents = load_seed_documents(seed_path)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    logger.info("Reindex against %s, clean mode: %s", base_url, "yes" if clean else "no", color="cyan")
    logger.info("Loaded %d documents from %s", len(documents), seed_path.name)

    summary = asyncio.run(run(config, api_client, documents, clean, concurrency))

    click.echo(f"Done: {summary.indexed} indexed, {summary.failed} failed")
    if not summary.ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
