from functools import lru_cache

from fastapi import Depends

from image_vault.adapters.fs.source import FileSystemSource
from image_vault.app_shell.config import ClientRegistry, Settings, StoreCredentials
from image_vault.components.images import ImageService
from image_vault.components.images.ports import LocalSourcePort, MediaStorePort
from image_vault.rules.loader import load_rules
from image_vault.rules.models import DEFAULT_RULES, ImageRules, Rules


# --- Settings ---
@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules(settings: Settings = Depends(get_settings)) -> Rules:
    # A missing rules file means defaults; a broken one fails loudly.
    if not settings.rules_path.exists():
        return DEFAULT_RULES
    return load_rules(settings.rules_path)


def get_image_rules(rules: Rules = Depends(get_rules)) -> ImageRules:
    return rules.images


# --- Store clients ---
@lru_cache
def get_registry() -> ClientRegistry:
    return ClientRegistry(get_settings().store_backend)


def get_store(registry: ClientRegistry = Depends(get_registry)) -> MediaStorePort:
    return registry.get(StoreCredentials.from_env())


def get_local_source(settings: Settings = Depends(get_settings)) -> LocalSourcePort:
    return FileSystemSource(settings.upload_dir)


# --- Services ---
def get_image_service(
    store: MediaStorePort = Depends(get_store),
    rules: ImageRules = Depends(get_image_rules),
    local_source: LocalSourcePort = Depends(get_local_source),
) -> ImageService:
    return ImageService(store, rules=rules, local_source=local_source)
