"""
Domain models: Pydantic types for the packaging pipeline.

All models are re-exported here for convenient access:

    from relpack.core.models import BuildContext, PlatformId, Action, Receipt
"""

from relpack.core.models.action import Action, Receipt
from relpack.core.models.context import BuildContext, PackageMetadata, RunMode
from relpack.core.models.packaging import BindingConfig, PackagingConfig
from relpack.core.models.platform import InitVariant, PackageFormat, PlatformId, TlsBackend
from relpack.core.models.state import RunState, StageState

__all__ = [
    # action.py
    "Action",
    "Receipt",
    # context.py
    "BuildContext",
    "PackageMetadata",
    "RunMode",
    # packaging.py
    "BindingConfig",
    "PackagingConfig",
    # platform.py
    "InitVariant",
    "PackageFormat",
    "PlatformId",
    "TlsBackend",
    # state.py
    "RunState",
    "StageState",
]
