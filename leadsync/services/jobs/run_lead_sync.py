"""
CLI Entry Point for a one-shot Lead Sync
For cron-driven deployments that don't keep the API's scheduler running

Usage:
    python -m leadsync.services.jobs.run_lead_sync [all|meta|google]
"""
import sys
import asyncio
import logging

from leadsync.models.schemas.sync import SyncSelector

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


async def run_once(selector: SyncSelector) -> bool:
    """Build the pipeline from settings, run one sync, tear it down."""
    from leadsync.core.dependencies import get_orchestrator, initialize_clients, shutdown_clients

    await initialize_clients()
    try:
        summary = await get_orchestrator().run_sync(selector)
    finally:
        await shutdown_clients()

    for result in summary.per_platform:
        logger.info(
            f"   {result.platform.value}: {result.status.value} "
            f"(fetched={result.fetched}, imported={result.imported})"
            + (f" - {result.error}" if result.error else "")
        )
    return summary.ok


def main():
    """
    Run one sync for the selector given on the command line (default: all).
    Exit code 0 only if every platform finished with SUCCESS.
    """
    selector_name = sys.argv[1] if len(sys.argv) > 1 else "all"

    try:
        selector = SyncSelector(selector_name.upper())
    except ValueError:
        logger.error(f"❌ Unknown selector '{selector_name}'. Use all, meta or google.")
        sys.exit(2)

    logger.info(f"🔁 Lead sync cron job started ({selector.value})")

    try:
        ok = asyncio.run(run_once(selector))
    except Exception as e:
        logger.error(f"❌ Lead sync cron job failed: {e}", exc_info=True)
        sys.exit(1)

    if ok:
        logger.info("✅ Lead sync cron job completed successfully")
        sys.exit(0)

    logger.warning("⚠️  Lead sync cron job finished with errors (see sync run log)")
    sys.exit(1)


if __name__ == "__main__":
    main()
