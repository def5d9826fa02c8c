import logging

from celery import shared_task

from .conf import get_sendit_config
from .districts import DistrictCatalogCache
from .sendit import SenditClient

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_kwargs={"max_retries": 3, "countdown": 300},
)
def refresh_district_catalog(self, with_details: bool = True) -> int:
    """
    Rebuild the district catalog snapshot from the courier (weekly beat job).
    Returns the number of districts stored, 0 when the courier is not configured.
    """
    config = get_sendit_config()
    if not config.is_configured:
        logger.warning("refresh_district_catalog: Sendit credentials missing; keeping current catalog")
        return 0

    with SenditClient(config) as sendit:
        catalog = DistrictCatalogCache().refresh(sendit, with_details=with_details)

    logger.info("refresh_district_catalog: stored %s districts", len(catalog))
    return len(catalog)
