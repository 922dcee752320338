"""Dependency injection container for the Biodiversity Hub application."""

from pathlib import Path

from dependency_injector import containers, providers

from biodiversityhub.config.models import HubConfig
from biodiversityhub.core.config import get_config
from biodiversityhub.gateway.memory import InMemoryGateway
from biodiversityhub.gateway.supabase import SupabaseGateway
from biodiversityhub.notifications.toasts import ToastNotifier
from biodiversityhub.profiles.directory import UserDirectory
from biodiversityhub.species.list_view import SpeciesListView
from biodiversityhub.system.path_resolver import PathResolver


def resolve_memory_store_path(config: HubConfig, resolver: PathResolver) -> Path | None:
    """Snapshot file for the in-memory gateway; None keeps the store volatile."""
    configured = config.gateway.memory_store_path
    if not configured:
        return None
    if configured == "default":
        return resolver.get_memory_store_path()
    return Path(configured).expanduser()


def decline(prompt: str) -> bool:
    """Confirmation used when no interactive front end is attached."""
    return False


class Container(containers.DeclarativeContainer):
    """Application dependency injection container.

    The gateway is the only shared resource; every view receives it from
    here instead of reaching for a module-level client.
    """

    # Core infrastructure services - singletons
    path_resolver = providers.Singleton(PathResolver)

    config = providers.Singleton(
        get_config,
        path_resolver=path_resolver,
    )

    # Remote data gateway, selected by configuration
    gateway = providers.Selector(
        providers.Callable(lambda c: c.gateway.backend, c=config),
        supabase=providers.Singleton(
            SupabaseGateway,
            url=providers.Factory(lambda c: c.gateway.url, c=config),
            anon_key=providers.Factory(lambda c: c.gateway.anon_key, c=config),
            access_token=providers.Factory(lambda c: c.gateway.access_token, c=config),
        ),
        memory=providers.Singleton(
            InMemoryGateway,
            session_user_id=providers.Factory(lambda c: c.gateway.session_user_id, c=config),
            snapshot_path=providers.Factory(
                resolve_memory_store_path, config=config, resolver=path_resolver
            ),
        ),
    )

    notifier = providers.Singleton(ToastNotifier)

    # Interactive front ends override this with a real prompt
    confirm = providers.Object(decline)

    # Views - a fresh instance per request
    species_list_view = providers.Factory(
        SpeciesListView,
        gateway=gateway,
        notifier=notifier,
        confirm=confirm,
        preview_length=providers.Factory(lambda c: c.description_preview_length, c=config),
    )

    user_directory = providers.Factory(
        UserDirectory,
        gateway=gateway,
    )
