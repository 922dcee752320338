from pathlib import Path

import pytest

from biodiversityhub.gateway.memory import InMemoryGateway
from biodiversityhub.notifications.toasts import ToastNotifier
from biodiversityhub.species.models import Species
from biodiversityhub.system.path_resolver import PathResolver

ALICE = "6f1c0c52-alice"
BOB = "a83d9e10-bob"


@pytest.fixture
def path_resolver(tmp_path: Path) -> PathResolver:
    """Provide a PathResolver whose writable paths live in a temporary directory.

    Overrides both the attribute and the methods, since callers use either.
    """
    resolver = PathResolver()
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    resolver.data_dir = data_dir
    resolver.get_data_dir = lambda: data_dir
    resolver.get_config_path = lambda: tmp_path / "config" / "biodiversityhub.yaml"
    resolver.get_memory_store_path = lambda: data_dir / "store" / "catalog.json"
    return resolver


@pytest.fixture
def alice_id() -> str:
    return ALICE


@pytest.fixture
def bob_id() -> str:
    return BOB


@pytest.fixture
def notifier() -> ToastNotifier:
    return ToastNotifier()


@pytest.fixture
def profile_rows() -> list[dict]:
    return [
        {
            "id": ALICE,
            "display_name": "Alice Ng",
            "email": "alice@example.org",
            "biography": "Field botanist.",
        },
        {"id": BOB, "display_name": "Bob Reyes", "email": "bob@example.org", "biography": None},
    ]


@pytest.fixture
def species_rows() -> list[dict]:
    return [
        {
            "id": 1,
            "scientific_name": "Panthera leo",
            "common_name": "Lion",
            "kingdom": "Animalia",
            "total_population": 23000,
            "image": "https://example.org/lion.jpg",
            "description": "Large social cat of the African savanna.",
            "endangered": True,
            "author": ALICE,
        },
        {
            "id": 2,
            "scientific_name": "Amanita muscaria",
            "common_name": "Fly agaric",
            "kingdom": "Fungi",
            "total_population": None,
            "image": None,
            "description": None,
            "endangered": False,
            "author": BOB,
        },
    ]


@pytest.fixture
def gateway(profile_rows, species_rows) -> InMemoryGateway:
    """Seeded in-memory gateway with Alice signed in."""
    store = InMemoryGateway(session_user_id=ALICE)
    store.seed("profiles", profile_rows)
    store.seed("species", species_rows)
    return store


@pytest.fixture
def lion(species_rows) -> Species:
    return Species.model_validate(species_rows[0])


@pytest.fixture
def fly_agaric(species_rows) -> Species:
    return Species.model_validate(species_rows[1])
