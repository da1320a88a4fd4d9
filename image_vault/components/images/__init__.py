"""
Images component - identity-aware operations on a remote image store.
"""

from ._orchestrator import (
    MutationOrchestrator,
    MutationRun,
    MutationState,
    compute_prefix,
    fetch_current,
)
from .component import (
    ImageService,
    create_image_service,
    run_change_prefix,
    run_create,
    run_delete,
    run_get,
    run_is_image_buffer,
    run_list,
    run_parse_url,
    run_relocate,
    run_rename,
    run_replace,
    source_reference,
    validate_metadata,
    validate_source,
)
from .models import (
    BufferSource,
    ChangePrefixInput,
    CreateImageInput,
    FileSource,
    ImageSource,
    ListImagesInput,
    PrefixMode,
    RelocateImageInput,
    RenameImageInput,
    ReplaceImageInput,
    UrlSource,
)
from .ports import LocalSourcePort, MediaStorePort, RemoteStoreError

__all__ = [
    # Entry points
    "run_change_prefix",
    "run_create",
    "run_delete",
    "run_get",
    "run_is_image_buffer",
    "run_list",
    "run_parse_url",
    "run_relocate",
    "run_rename",
    "run_replace",
    # Helper functions
    "compute_prefix",
    "fetch_current",
    "source_reference",
    "validate_metadata",
    "validate_source",
    # Mutations
    "MutationOrchestrator",
    "MutationRun",
    "MutationState",
    # Service class
    "ImageService",
    "create_image_service",
    # Input models
    "BufferSource",
    "ChangePrefixInput",
    "CreateImageInput",
    "FileSource",
    "ImageSource",
    "ListImagesInput",
    "PrefixMode",
    "RelocateImageInput",
    "RenameImageInput",
    "ReplaceImageInput",
    "UrlSource",
    # Ports
    "LocalSourcePort",
    "MediaStorePort",
    "RemoteStoreError",
]
