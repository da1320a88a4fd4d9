"""
MutationOrchestrator - rename, relocate and prefix change.

The store only offers an atomic rename of the flat key; it knows nothing
about the identity metadata. Every identity change is therefore two remote
calls (rename + metadata resync) that cannot be made atomic.

States per request:

    FETCHING_CURRENT -> COMPUTING_TARGET -> REMOTE_RENAMING
        -> SYNCING_METADATA -> REFETCHING -> DONE

with FAILED reachable from any state.

Key behaviors:
- The current identity is read from a fresh fetch, never from a cached view
- A target key equal to the current key is a no-op: no remote mutation
- Rename uses overwrite=False; collisions surface as typed errors
- A resync failure after a successful rename is raised, never swallowed,
  and there is no rollback of the rename
- The result always comes from a re-fetch of the new key
- No retries
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from image_vault.core.entities import (
    PREFIX_SEPARATOR,
    LogicalIdentity,
    NormalizedAssetView,
)
from image_vault.core.errors import (
    ImageVaultError,
    MutationError,
    RelocateError,
    RenameError,
    ValidationError,
)
from image_vault.domain.classify import classify_fetch_error, classify_mutation_error
from image_vault.domain.identity import (
    build_key_from_identity,
    decode_stored_identity,
    to_context_metadata,
    validate_flat_key,
    validate_folder_path,
    validate_name_segment,
    with_identity,
)
from image_vault.domain.normalize import IMAGE_RESOURCE_TYPE, normalize_fetched

from .models import PrefixMode
from .ports import MediaStorePort

logger = logging.getLogger(__name__)


class MutationState(str, Enum):
    FETCHING_CURRENT = "fetching_current"
    COMPUTING_TARGET = "computing_target"
    REMOTE_RENAMING = "remote_renaming"
    SYNCING_METADATA = "syncing_metadata"
    REFETCHING = "refetching"
    DONE = "done"
    FAILED = "failed"


TransitionHook = Callable[[MutationState, str], None]


@dataclass
class MutationRun:
    """Progress of one mutation request."""

    operation: str
    source_key: str
    target_key: str | None = None
    states: list[MutationState] = field(default_factory=list)

    @property
    def state(self) -> MutationState | None:
        return self.states[-1] if self.states else None


# --- Authoritative fetch ---


async def fetch_current(
    store: MediaStorePort,
    public_id: str,
    resource_type: str = IMAGE_RESOURCE_TYPE,
) -> NormalizedAssetView:
    """
    Fetch and normalize one image straight from the store.

    Raises:
        ValidationError: If the public id is malformed.
        NotFoundError: If the image does not exist.
        FetchError: For any other failure, including incomplete payloads.
    """
    validate_flat_key(public_id)

    try:
        raw = await store.fetch_one(public_id, resource_type=resource_type, context=True)
    except ImageVaultError:
        raise
    except Exception as err:
        raise classify_fetch_error(err, {"public_id": public_id}, key=public_id) from err

    return normalize_fetched(raw, public_id, resource_type)


# --- Prefix arithmetic ---


def compute_prefix(existing: str | None, value: str | None, mode: PrefixMode) -> str:
    """
    Combine the existing prefix with ``value`` according to ``mode``.

    Returns '' when the image ends up without a prefix. The duplicate guards
    compare joined strings, so ``prepend`` keeps ``a--b`` untouched for
    value ``a`` and ``append`` keeps it for value ``b``.
    """
    current = existing or ""

    if mode is PrefixMode.REPLACE:
        return value or ""

    if not value:
        return current

    if mode is PrefixMode.PREPEND:
        if current == value or current.startswith(f"{value}{PREFIX_SEPARATOR}"):
            return current
        return f"{value}{PREFIX_SEPARATOR}{current}" if current else value

    if current == value or current.endswith(f"{PREFIX_SEPARATOR}{value}"):
        return current
    return f"{current}{PREFIX_SEPARATOR}{value}" if current else value


def parse_prefix_mode(mode: PrefixMode | str | None) -> PrefixMode:
    if isinstance(mode, PrefixMode):
        return mode
    try:
        return PrefixMode(mode)
    except ValueError as err:
        raise ValidationError(
            "The mode is required and must be one of replace, append, prepend.",
            {"mode": mode},
            err,
        ) from err


# --- Orchestrator ---


class MutationOrchestrator:
    """
    Runs identity-changing mutations against one store client.

    The instance holds no per-request state and can serve concurrent
    requests. ``on_transition`` is called with every state entered.
    """

    def __init__(
        self,
        store: MediaStorePort,
        *,
        resource_type: str = IMAGE_RESOURCE_TYPE,
        on_transition: TransitionHook | None = None,
    ) -> None:
        self._store = store
        self._resource_type = resource_type
        self._on_transition = on_transition

    async def rename(self, public_id: str, new_name: str) -> NormalizedAssetView:
        """
        Give the image a new name, keeping folder and prefix.

        Raises:
            ValidationError: On malformed input or an unchanged name.
            NotFoundError: If the image does not exist.
            RenameError: If the rename or the metadata resync fails.
        """
        validate_flat_key(public_id)
        validate_name_segment(new_name, "new name")

        def target(identity: LogicalIdentity) -> LogicalIdentity:
            if new_name == identity.name:
                raise ValidationError(
                    "The new name must differ from the current one.",
                    {"public_id": public_id, "new_name": new_name},
                )
            return LogicalIdentity(folder=identity.folder, name=new_name, prefix=identity.prefix)

        return await self._execute("rename", public_id, target, RenameError)

    async def relocate(self, public_id: str, target_folder: str) -> NormalizedAssetView:
        """
        Move the image to another folder, keeping name and prefix.

        Raises:
            ValidationError: On malformed input or an unchanged folder.
            NotFoundError: If the image does not exist.
            RelocateError: If the rename or the metadata resync fails.
        """
        validate_flat_key(public_id)
        validate_folder_path(target_folder)

        def target(identity: LogicalIdentity) -> LogicalIdentity:
            if target_folder == identity.folder:
                raise ValidationError(
                    "The target folder must differ from the current one.",
                    {"public_id": public_id, "target_folder": target_folder},
                )
            return LogicalIdentity(folder=target_folder, name=identity.name, prefix=identity.prefix)

        return await self._execute("relocate", public_id, target, RelocateError)

    async def change_prefix(
        self,
        public_id: str,
        prefix: str | None,
        mode: PrefixMode | str,
    ) -> NormalizedAssetView:
        """
        Replace, prepend to or append to the image prefix.

        An empty ``prefix`` with mode replace clears the prefix. Changes that
        leave the key untouched return the current view without mutating.

        Raises:
            ValidationError: On malformed input.
            NotFoundError: If the image does not exist.
            RenameError: If the rename or the metadata resync fails.
        """
        validate_flat_key(public_id)
        prefix_mode = parse_prefix_mode(mode)

        if prefix:
            validate_name_segment(prefix, "prefix")
        elif prefix_mode is not PrefixMode.REPLACE:
            raise ValidationError(
                f"The prefix is required for {prefix_mode.value}.", {"mode": prefix_mode.value}
            )

        def target(identity: LogicalIdentity) -> LogicalIdentity:
            new_prefix = compute_prefix(identity.prefix, prefix, prefix_mode)
            return LogicalIdentity(
                folder=identity.folder, name=identity.name, prefix=new_prefix or None
            )

        return await self._execute("change_prefix", public_id, target, RenameError)

    # --- Steps ---

    def _enter(self, run: MutationRun, state: MutationState) -> None:
        run.states.append(state)
        logger.debug("%s %s: %s", run.operation, run.source_key, state.value)
        if self._on_transition is not None:
            self._on_transition(state, run.operation)

    async def _execute(
        self,
        operation: str,
        public_id: str,
        compute_target: Callable[[LogicalIdentity], LogicalIdentity],
        error_cls: type[MutationError],
    ) -> NormalizedAssetView:
        run = MutationRun(operation=operation, source_key=public_id)
        try:
            result = await self._advance(run, compute_target, error_cls)
        except Exception:
            self._enter(run, MutationState.FAILED)
            raise
        self._enter(run, MutationState.DONE)
        return result

    async def _advance(
        self,
        run: MutationRun,
        compute_target: Callable[[LogicalIdentity], LogicalIdentity],
        error_cls: type[MutationError],
    ) -> NormalizedAssetView:
        source_key = run.source_key

        self._enter(run, MutationState.FETCHING_CURRENT)
        current = await fetch_current(self._store, source_key, self._resource_type)
        identity = decode_stored_identity(current.metadata, source_key)

        self._enter(run, MutationState.COMPUTING_TARGET)
        target_identity = compute_target(identity)
        target_key = build_key_from_identity(target_identity)
        validate_flat_key(target_key)
        run.target_key = target_key

        if target_key == source_key:
            logger.info(
                "%s %s: target equals current key, nothing to do", run.operation, source_key
            )
            return current

        self._enter(run, MutationState.REMOTE_RENAMING)
        try:
            await self._store.rename(
                source_key,
                target_key,
                resource_type=self._resource_type,
                overwrite=False,
            )
        except ImageVaultError:
            raise
        except Exception as err:
            raise classify_mutation_error(err, error_cls, source_key, target_key) from err

        self._enter(run, MutationState.SYNCING_METADATA)
        metadata = with_identity(current.metadata, target_identity)
        try:
            await self._store.update(
                target_key,
                resource_type=self._resource_type,
                context=to_context_metadata(metadata),
            )
        except ImageVaultError:
            raise
        except Exception as err:
            logger.warning(
                "%s: %s was moved to %s but its identity metadata is stale",
                run.operation,
                source_key,
                target_key,
            )
            raise error_cls(
                f"Image moved to {target_key} but the metadata update failed.",
                source_key,
                target_key,
                err,
            ) from err

        self._enter(run, MutationState.REFETCHING)
        result = await fetch_current(self._store, target_key, self._resource_type)
        logger.info("%s: %s -> %s", run.operation, source_key, target_key)
        return result
