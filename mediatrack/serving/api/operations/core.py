"""
Core operations: which features this server exposes and who built it.
Both read configuration only.
"""

from strawberry.types import Info

from mediatrack.serving.api.registry import OperationSet
from mediatrack.serving.api.types import (
    CoreDetails,
    CoreFeatureEnabled,
    GeneralCoreFeatureEnabled,
    MetadataCoreFeatureEnabled,
)

AUTHOR = "ignisda"
REPOSITORY_LINK = "https://github.com/ignisda/ryot"

operations = OperationSet("core")


@operations.query
async def core_enabled_features(info: Info) -> CoreFeatureEnabled:
    """Get all the features that are enabled for the service"""
    ctx = info.context
    metadata = [
        MetadataCoreFeatureEnabled(name=lot, enabled=check())
        for lot, check in ctx.services.feature_checks
    ]
    general = [
        GeneralCoreFeatureEnabled(name="FILE_STORAGE", enabled=ctx.settings.file_storage.is_enabled()),
    ]
    return CoreFeatureEnabled(metadata=metadata, general=general)


@operations.query
async def core_details(info: Info) -> CoreDetails:
    """Get some primary information about the service"""
    settings = info.context.settings
    return CoreDetails(
        version=settings.version,
        author_name=AUTHOR,
        repository_link=REPOSITORY_LINK,
        username_change_allowed=settings.users.allow_changing_username,
    )
