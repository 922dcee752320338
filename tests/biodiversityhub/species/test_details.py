import asyncio

import pytest

from biodiversityhub.gateway.base import GatewayError
from biodiversityhub.notifications.toasts import ToastVariant
from biodiversityhub.species.details import AUTHOR_UNAVAILABLE, DialogState, SpeciesDetailDialog
from biodiversityhub.species.models import Species


@pytest.fixture
def comment_rows(alice_id, bob_id):
    return [
        {
            "id": 10,
            "species_id": 1,
            "user_id": bob_id,
            "comment_text": "Saw a pride near the river.",
            "created_at": "2024-03-01T09:00:00+00:00",
            "updated_at": "2024-03-01T09:00:00+00:00",
        },
        {
            "id": 11,
            "species_id": 1,
            "user_id": alice_id,
            "comment_text": "Population figure is from 2023.",
            "created_at": "2024-03-02T09:00:00+00:00",
            "updated_at": "2024-03-02T09:00:00+00:00",
        },
        {
            "id": 12,
            "species_id": 2,
            "user_id": alice_id,
            "comment_text": "Do not eat.",
            "created_at": "2024-03-03T09:00:00+00:00",
            "updated_at": "2024-03-03T09:00:00+00:00",
        },
    ]


@pytest.fixture
def seeded_gateway(gateway, comment_rows):
    gateway.seed("comments", comment_rows)
    return gateway


@pytest.fixture
def dialog(seeded_gateway, lion, notifier):
    return SpeciesDetailDialog(seeded_gateway, lion, notifier)


def gate(mocker, gateway, method):
    """Hold a gateway method until the returned event is set."""
    release = asyncio.Event()
    original = getattr(gateway, method)

    async def held(*args, **kwargs):
        await release.wait()
        return await original(*args, **kwargs)

    mock = mocker.patch.object(gateway, method, side_effect=held)
    return release, mock


class TestOpen:
    """Test opening the dialog and its fetches."""

    @pytest.mark.asyncio
    async def test_open_loads_session_author_and_comments(self, dialog, alice_id):
        """Should resolve all three fetches."""
        dialog.open()
        await dialog.wait_until_loaded()

        assert dialog.state is DialogState.OPEN
        assert dialog.session_id == alice_id
        assert dialog.author_label == "Alice Ng (alice@example.org)"
        assert [c.id for c in dialog.comments] == [11, 10]

    @pytest.mark.asyncio
    async def test_comments_carry_author_display_name(self, dialog):
        """Should flatten the joined profile into each comment."""
        dialog.open()
        await dialog.wait_until_loaded()

        assert [c.author_label for c in dialog.comments] == ["Alice Ng", "Bob Reyes"]

    @pytest.mark.asyncio
    async def test_comments_are_scoped_to_the_species(self, seeded_gateway, fly_agaric, notifier):
        """Should not show comments of other species."""
        dialog = SpeciesDetailDialog(seeded_gateway, fly_agaric, notifier)

        dialog.open()
        await dialog.wait_until_loaded()

        assert [c.comment_text for c in dialog.comments] == ["Do not eat."]

    @pytest.mark.asyncio
    async def test_author_placeholder_while_author_fetch_is_pending(
        self, dialog, seeded_gateway, mocker
    ):
        """Should show comments before the author arrives."""
        release, _ = gate(mocker, seeded_gateway, "select_single")

        dialog.open()
        for _ in range(5):
            await asyncio.sleep(0)

        assert dialog.author_label == AUTHOR_UNAVAILABLE
        assert len(dialog.comments) == 2

        release.set()
        await dialog.wait_until_loaded()
        assert dialog.author_label == "Alice Ng (alice@example.org)"

    @pytest.mark.asyncio
    async def test_author_failure_leaves_comments_intact(
        self, dialog, seeded_gateway, notifier, mocker
    ):
        """Should log the failure without blanking other sections or toasting."""
        mocker.patch.object(
            seeded_gateway, "select_single", side_effect=GatewayError("connection reset")
        )

        dialog.open()
        await dialog.wait_until_loaded()

        assert dialog.author_label == AUTHOR_UNAVAILABLE
        assert len(dialog.comments) == 2
        assert notifier.toasts == []

    @pytest.mark.asyncio
    async def test_comment_failure_leaves_author_intact(self, dialog, seeded_gateway, mocker):
        """Should keep the comment list empty and still show the author."""
        mocker.patch.object(seeded_gateway, "select", side_effect=GatewayError("timeout"))

        dialog.open()
        await dialog.wait_until_loaded()

        assert dialog.comments == []
        assert dialog.author_label == "Alice Ng (alice@example.org)"

    @pytest.mark.asyncio
    async def test_missing_author_profile(self, seeded_gateway, species_rows, notifier):
        """Should show the placeholder when the author has no profile row."""
        orphan = Species.model_validate({**species_rows[0], "author": "deleted-user"})
        dialog = SpeciesDetailDialog(seeded_gateway, orphan, notifier)

        dialog.open()
        await dialog.wait_until_loaded()

        assert dialog.author is None
        assert dialog.author_label == AUTHOR_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_species_without_author(self, seeded_gateway, lion, notifier, mocker):
        """Should skip the profile fetch and still load comments."""
        select_single = mocker.spy(seeded_gateway, "select_single")
        anonymous = lion.model_copy(update={"author": None})
        dialog = SpeciesDetailDialog(seeded_gateway, anonymous, notifier)

        dialog.open()
        await dialog.wait_until_loaded()

        select_single.assert_not_called()
        assert dialog.author is None
        assert dialog.author_label == AUTHOR_UNAVAILABLE
        assert [c.id for c in dialog.comments] == [11, 10]

    @pytest.mark.asyncio
    async def test_second_open_is_ignored(self, dialog, seeded_gateway, mocker):
        """Should not dispatch a second round of fetches while open."""
        select = mocker.spy(seeded_gateway, "select")

        dialog.open()
        dialog.open()
        await dialog.wait_until_loaded()

        select.assert_called_once()


class TestClose:
    """Test closing and reopening."""

    @pytest.mark.asyncio
    async def test_close_drops_fetched_state(self, dialog):
        """Should start the next open from nothing."""
        dialog.open()
        await dialog.wait_until_loaded()
        dialog.comment_input = "half-typed"

        dialog.close()

        assert dialog.state is DialogState.CLOSED
        assert dialog.session_id is None
        assert dialog.author is None
        assert dialog.comments == []
        assert dialog.comment_input == ""

    @pytest.mark.asyncio
    async def test_close_cancels_pending_fetch(self, dialog, seeded_gateway, mocker):
        """Should not let a late answer land in a closed dialog."""
        release, _ = gate(mocker, seeded_gateway, "select")
        dialog.open()
        await asyncio.sleep(0)

        dialog.close()
        release.set()
        await dialog.wait_until_loaded()

        assert dialog.comments == []
        assert not dialog.is_open

    @pytest.mark.asyncio
    async def test_reopen_fetches_again(self, dialog, seeded_gateway, mocker):
        """Should refetch on every open."""
        select = mocker.spy(seeded_gateway, "select")
        dialog.open()
        await dialog.wait_until_loaded()
        dialog.close()

        dialog.open()
        await dialog.wait_until_loaded()

        assert select.call_count == 2
        assert len(dialog.comments) == 2

    @pytest.mark.asyncio
    async def test_answer_from_previous_open_is_discarded(self, dialog, seeded_gateway):
        """Should only accept results requested by the current open."""
        dialog.open()
        await dialog.wait_until_loaded()
        stale_generation = dialog._generation
        dialog.close()
        dialog.open()

        await dialog._load_comments(stale_generation)

        assert dialog.comments == []
        await dialog.wait_until_loaded()
        assert len(dialog.comments) == 2


class TestUpdateSpecies:
    """Test swapping the displayed record."""

    @pytest.mark.asyncio
    async def test_author_change_refetches_author(self, dialog, lion, bob_id):
        """Should load the new author's profile."""
        dialog.open()
        await dialog.wait_until_loaded()

        dialog.update_species(lion.model_copy(update={"author": bob_id}))
        await dialog.wait_until_loaded()

        assert dialog.author_label == "Bob Reyes (bob@example.org)"

    @pytest.mark.asyncio
    async def test_unchanged_keys_do_not_refetch(self, dialog, lion, seeded_gateway, mocker):
        """Should keep fetched data when only other fields change."""
        dialog.open()
        await dialog.wait_until_loaded()
        select = mocker.spy(seeded_gateway, "select")
        select_single = mocker.spy(seeded_gateway, "select_single")

        dialog.update_species(lion.model_copy(update={"common_name": "African lion"}))
        await dialog.wait_until_loaded()

        select.assert_not_called()
        select_single.assert_not_called()
        assert dialog.title == "African lion (Panthera leo)"


class TestAddComment:
    """Test posting comments."""

    @pytest.mark.asyncio
    async def test_comment_is_prepended_and_input_cleared(self, dialog):
        """Should show the new comment first with the poster's name."""
        dialog.open()
        await dialog.wait_until_loaded()
        dialog.comment_input = "Great find!"

        comment = await dialog.add_comment()

        assert comment is not None
        assert dialog.comments[0].comment_text == "Great find!"
        assert dialog.comments[0].author_label == "Alice Ng"
        assert len(dialog.comments) == 3
        assert dialog.comment_input == ""

    @pytest.mark.asyncio
    async def test_comment_text_is_trimmed(self, dialog, seeded_gateway):
        """Should store the trimmed body."""
        dialog.open()
        await dialog.wait_until_loaded()

        await dialog.add_comment("  Seen at dawn.  ")

        rows = await seeded_gateway.select("comments", filters={"comment_text": "Seen at dawn."})
        assert len(rows) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   \n\t"])
    async def test_blank_comment_is_not_posted(self, dialog, seeded_gateway, mocker, text):
        """Should make no gateway call for an empty body."""
        dialog.open()
        await dialog.wait_until_loaded()
        insert = mocker.spy(seeded_gateway, "insert")

        assert await dialog.add_comment(text) is None
        insert.assert_not_called()

    @pytest.mark.asyncio
    async def test_anonymous_viewer_cannot_post(self, dialog, seeded_gateway, mocker):
        """Should hide posting without a session."""
        seeded_gateway.sign_in(None)
        dialog.open()
        await dialog.wait_until_loaded()
        insert = mocker.spy(seeded_gateway, "insert")

        assert not dialog.can_post
        assert await dialog.add_comment("Hello") is None
        insert.assert_not_called()

    @pytest.mark.asyncio
    async def test_insert_failure_keeps_list_and_notifies(
        self, dialog, seeded_gateway, notifier, mocker
    ):
        """Should leave the list unchanged and surface the failure."""
        dialog.open()
        await dialog.wait_until_loaded()
        mocker.patch.object(seeded_gateway, "insert", side_effect=GatewayError("rate limited"))
        dialog.comment_input = "Great find!"

        assert await dialog.add_comment() is None

        assert len(dialog.comments) == 2
        assert dialog.comment_input == "Great find!"
        assert notifier.toasts[-1].title == "Error posting comment."
        assert notifier.toasts[-1].variant is ToastVariant.DESTRUCTIVE


class TestDeleteComment:
    """Test deleting comments."""

    @pytest.mark.asyncio
    async def test_only_own_comments_are_deletable(self, dialog):
        """Should offer delete on Alice's comment but not Bob's."""
        dialog.open()
        await dialog.wait_until_loaded()
        own, other = dialog.comments

        assert dialog.can_delete(own)
        assert not dialog.can_delete(other)

    @pytest.mark.asyncio
    async def test_delete_own_comment(self, dialog, seeded_gateway):
        """Should remove the comment locally and remotely."""
        dialog.open()
        await dialog.wait_until_loaded()

        assert await dialog.delete_comment(11)

        assert [c.id for c in dialog.comments] == [10]
        assert await seeded_gateway.select("comments", filters={"id": 11}) == []

    @pytest.mark.asyncio
    async def test_other_users_comment_is_not_deleted(self, dialog, seeded_gateway, mocker):
        """Should refuse without calling the gateway."""
        dialog.open()
        await dialog.wait_until_loaded()
        delete = mocker.spy(seeded_gateway, "delete")

        assert not await dialog.delete_comment(10)

        delete.assert_not_called()
        assert len(dialog.comments) == 2

    @pytest.mark.asyncio
    async def test_delete_failure_keeps_list_and_notifies(
        self, dialog, seeded_gateway, notifier, mocker
    ):
        """Should leave the comment in place and surface the failure."""
        dialog.open()
        await dialog.wait_until_loaded()
        mocker.patch.object(seeded_gateway, "delete", side_effect=GatewayError("timeout"))

        assert not await dialog.delete_comment(11)

        assert len(dialog.comments) == 2
        assert notifier.toasts[-1].title == "Error deleting comment."


class TestDisplay:
    """Test display labels."""

    def test_labels_for_complete_record(self, dialog):
        """Should format title and population."""
        assert dialog.title == "Lion (Panthera leo)"
        assert dialog.population_label == "23,000"
        assert dialog.description_label == "Large social cat of the African savanna."

    def test_labels_for_sparse_record(self, seeded_gateway, fly_agaric, notifier):
        """Should fall back for unknown values."""
        sparse = fly_agaric.model_copy(update={"common_name": None})
        dialog = SpeciesDetailDialog(seeded_gateway, sparse, notifier)

        assert dialog.title == "Amanita muscaria"
        assert dialog.population_label == "Unknown"
        assert dialog.description_label == "No description available."
