#!/usr/bin/env python3
"""Command-line front end for the species catalog."""

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

import click
from dependency_injector import providers

from biodiversityhub.core.container import Container
from biodiversityhub.gateway.base import GatewayError, SessionRequiredError
from biodiversityhub.notifications.toasts import ToastNotifier, ToastVariant
from biodiversityhub.species.card import SpeciesCard
from biodiversityhub.species.controller import SubmitOutcome
from biodiversityhub.species.dialogs import SpeciesFormDialog
from biodiversityhub.species.list_view import SpeciesListView
from biodiversityhub.system.path_resolver import PathResolver
from biodiversityhub.system.structlog_configurator import configure_structlog

T = TypeVar("T")


def _echo_toasts(notifier: ToastNotifier) -> None:
    for toast in notifier.drain():
        color = "red" if toast.variant is ToastVariant.DESTRUCTIVE else "green"
        message = f"{toast.title} {toast.description}".strip()
        click.echo(click.style(message, fg=color), err=toast.variant is ToastVariant.DESTRUCTIVE)


def _run(container: Container, action: Callable[[Container], Awaitable[T]]) -> T:
    """Run an async action against the container's gateway and report toasts."""

    async def runner() -> T:
        try:
            gateway = container.gateway()
        except ValueError as e:
            raise click.ClickException(str(e)) from e
        try:
            return await action(container)
        finally:
            await gateway.aclose()
            _echo_toasts(container.notifier())

    try:
        return asyncio.run(runner())
    except SessionRequiredError as e:
        raise click.ClickException(str(e)) from e
    except GatewayError as e:
        raise click.ClickException(f"Gateway error: {e.message}") from e


async def _load_card(container: Container, species_id: int) -> tuple[SpeciesListView, SpeciesCard]:
    view = container.species_list_view()
    await view.load()
    card = view.card_for(species_id)
    if card is None:
        raise click.ClickException(f"Species {species_id} not found")
    return view, card


def _species_formdata(**options: Any) -> dict[str, str]:  # noqa: ANN401
    """Keep only the options that were given on the command line."""
    return {name: value for name, value in options.items() if value is not None}


async def _submit(dialog: SpeciesFormDialog, formdata: dict[str, str]) -> None:
    dialog.open()
    outcome = await dialog.submit(formdata)
    if outcome is SubmitOutcome.INVALID:
        for field, messages in sorted(dialog.controller.errors.items()):
            for message in messages:
                click.echo(click.style(f"{field}: {message}", fg="red"), err=True)
        raise click.ClickException("Species not saved")
    if outcome is SubmitOutcome.FAILED:
        raise click.ClickException("Species not saved")


def species_options(func: Callable) -> Callable:
    """Shared options for species create and edit commands."""
    options = [
        click.option("--scientific-name", "scientific_name", help="Scientific name, required"),
        click.option("--common-name", "common_name", help="Common name"),
        click.option(
            "--kingdom", help="Animalia, Plantae, Fungi, Protista, Archaea or Bacteria"
        ),
        click.option("--population", "total_population", help="Total population"),
        click.option("--image", help="Image URL"),
        click.option("--description", help="Description"),
        click.option("--endangered", type=click.Choice(["yes", "no"]), help="Endangered status"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to the configuration file.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None) -> None:
    """Browse and curate the Biodiversity Hub species catalog."""
    container = Container()
    if config_path is not None:
        resolver = PathResolver()
        resolver.get_config_path = lambda: config_path
        container.path_resolver.override(providers.Object(resolver))

    configure_structlog(container.config())
    container.confirm.override(
        providers.Object(lambda prompt: click.confirm(prompt, default=False))
    )

    ctx.ensure_object(dict)
    ctx.obj["container"] = container


# ==================== Species ====================


@cli.group()
def species() -> None:
    """List, inspect and edit species."""


@species.command("list")
@click.pass_obj
def list_species(obj: dict[str, Any]) -> None:
    """List every species, newest first."""

    async def action(container: Container) -> None:
        view = container.species_list_view()
        cards = await view.load()
        if not cards:
            click.echo("No species yet.")
        for card in cards:
            item = card.species
            name = item.scientific_name
            if item.common_name:
                name = f"{name} ({item.common_name})"
            flags = [item.kingdom.value]
            if item.endangered:
                flags.append("endangered")
            if card.can_edit:
                flags.append("yours")
            click.echo(f"#{item.id} {name} [{', '.join(flags)}]")
            if card.summary:
                click.echo(f"    {card.summary}")

    _run(obj["container"], action)


@species.command("show")
@click.argument("species_id", type=int)
@click.pass_obj
def show_species(obj: dict[str, Any], species_id: int) -> None:
    """Show details, author and comments of a species."""

    async def action(container: Container) -> None:
        _, card = await _load_card(container, species_id)
        dialog = card.details
        dialog.open()
        await dialog.wait_until_loaded()
        try:
            click.echo(click.style(dialog.title, bold=True))
            click.echo(f"Kingdom: {card.species.kingdom.value}")
            click.echo(f"Total Population: {dialog.population_label}")
            click.echo(f"Description: {dialog.description_label}")
            click.echo(f"Author: {dialog.author_label}")
            click.echo("Comments:")
            if not dialog.comments:
                click.echo("    No comments yet.")
            for comment in dialog.comments:
                marker = " *" if dialog.can_delete(comment) else ""
                click.echo(
                    f"    [{comment.id}] {comment.author_label}: {comment.comment_text}{marker}"
                )
        finally:
            dialog.close()

    _run(obj["container"], action)


@species.command("add")
@species_options
@click.pass_obj
def add_species(obj: dict[str, Any], **options: Any) -> None:  # noqa: ANN401
    """Add a new species authored by the signed-in user."""

    async def action(container: Container) -> None:
        view = container.species_list_view()
        await view.load()
        if view.add_dialog is None:
            raise click.ClickException("You must be signed in to add species")
        await _submit(view.add_dialog, _species_formdata(**options))

    _run(obj["container"], action)


@species.command("edit")
@click.argument("species_id", type=int)
@species_options
@click.pass_obj
def edit_species(obj: dict[str, Any], species_id: int, **options: Any) -> None:  # noqa: ANN401
    """Edit a species you authored."""

    async def action(container: Container) -> None:
        _, card = await _load_card(container, species_id)
        if card.edit_dialog is None:
            raise click.ClickException("You cannot edit this species")
        await _submit(card.edit_dialog, _species_formdata(**options))

    _run(obj["container"], action)


@species.command("delete")
@click.argument("species_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
@click.pass_obj
def delete_species(obj: dict[str, Any], species_id: int, yes: bool) -> None:
    """Delete a species you authored."""
    container = obj["container"]
    if yes:
        container.confirm.override(providers.Object(lambda prompt: True))

    async def action(container: Container) -> None:
        _, card = await _load_card(container, species_id)
        if not card.can_edit:
            raise click.ClickException("You cannot delete this species")
        if not await card.delete():
            raise click.ClickException("Species not deleted")

    _run(container, action)


# ==================== Comments ====================


@cli.group()
def comments() -> None:
    """Post and remove comments on species."""


@comments.command("add")
@click.argument("species_id", type=int)
@click.argument("text")
@click.pass_obj
def add_comment(obj: dict[str, Any], species_id: int, text: str) -> None:
    """Post a comment on a species."""

    async def action(container: Container) -> None:
        _, card = await _load_card(container, species_id)
        dialog = card.details
        dialog.open()
        try:
            await dialog.wait_until_loaded()
            comment = await dialog.add_comment(text)
            if comment is None:
                raise click.ClickException("Comment not posted")
            click.echo(f"[{comment.id}] {comment.author_label}: {comment.comment_text}")
        finally:
            dialog.close()

    _run(obj["container"], action)


@comments.command("delete")
@click.argument("species_id", type=int)
@click.argument("comment_id", type=int)
@click.pass_obj
def delete_comment(obj: dict[str, Any], species_id: int, comment_id: int) -> None:
    """Delete one of your comments."""

    async def action(container: Container) -> None:
        _, card = await _load_card(container, species_id)
        dialog = card.details
        dialog.open()
        try:
            await dialog.wait_until_loaded()
            if not await dialog.delete_comment(comment_id):
                raise click.ClickException(f"Comment {comment_id} not deleted")
            click.echo(f"Comment {comment_id} deleted.")
        finally:
            dialog.close()

    _run(obj["container"], action)


# ==================== Users ====================


@cli.group()
def users() -> None:
    """Browse user profiles."""


@users.command("list")
@click.pass_obj
def list_users(obj: dict[str, Any]) -> None:
    """List every user profile."""

    async def action(container: Container) -> None:
        directory = container.user_directory()
        entries = await directory.load()
        if directory.error:
            raise click.ClickException(directory.error)
        for entry in entries:
            click.echo(click.style(entry.name_label, bold=True))
            click.echo(f"    Email: {entry.email}")
            click.echo(f"    Bio: {entry.biography_label}")

    _run(obj["container"], action)


def main() -> None:
    """Entry point for the biodiversityhub command."""
    cli()


if __name__ == "__main__":
    main()
