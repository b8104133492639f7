import logging
from dataclasses import dataclass, replace
from typing import Optional

import click

from app_config import AppConfig, AppConfigurationError, load_app_config
from pomodoro.constants import SESSION_COMPLETED
from runtime import (
    FocusSession,
    FocusSessionDependencies,
    RuntimeUIPublisher,
    TerminalRenderSink,
)
from runtime.messages import settlement_lines
from server import ServerConfigurationError, UIServer, UIServerConfig
from settlement import (
    SettlementError,
    SettlementPersistenceError,
    TicketAlreadyCompletedError,
)
from store import JsonDataStore, StoreError, TicketNotFoundError


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure logging for the application."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return logging.getLogger("ticket_hero")


@dataclass(frozen=True)
class CliContext:
    logger: logging.Logger
    app_config: AppConfig
    store: JsonDataStore


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to config.toml (defaults to $TICKET_HERO_CONFIG_FILE or ./config.toml).",
)
@click.option(
    "--verbose/--quiet",
    default=False,
    show_default=True,
    help="Verbose logs INFO messages; quiet only warnings and errors.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], verbose: bool) -> None:
    """Ticket Hero: a pomodoro timer with XP for your tickets."""
    logger = setup_logging(level=logging.INFO if verbose else logging.WARNING)

    try:
        app_config = load_app_config(config_path)
    except AppConfigurationError as error:
        logger.error("App configuration error: %s", error)
        ctx.exit(1)
    if app_config.source_file:
        logger.info("Loaded runtime config: %s", app_config.source_file)

    store = JsonDataStore(app_config.storage.data_file, logger=logging.getLogger("store"))
    try:
        store.load()
    except StoreError as error:
        logger.error("Data file error: %s", error)
        ctx.exit(1)

    ctx.obj = CliContext(logger=logger, app_config=app_config, store=store)


@cli.command()
@click.argument("name")
@click.option("--story-points", "-s", type=click.IntRange(min=1), default=1, show_default=True)
@click.option(
    "--allocated-minutes",
    "-m",
    type=click.IntRange(min=1),
    default=25,
    show_default=True,
    help="Expected effort in minutes.",
)
@click.pass_obj
def add(obj: CliContext, name: str, story_points: int, allocated_minutes: int) -> None:
    """Add a new ticket."""
    try:
        item = obj.store.add_ticket(
            name,
            story_points=story_points,
            allocated_time_minutes=allocated_minutes,
        )
    except StoreError as error:
        obj.logger.error("Failed to add ticket: %s", error)
        raise click.exceptions.Exit(1)
    click.echo(click.style(f"Ticket added: {item.id} ({item.name})", fg="green"))


@cli.command()
@click.argument("ticket_id")
@click.option("--name", default=None, help="New ticket name.")
@click.option("--story-points", "-s", type=click.IntRange(min=1), default=None)
@click.option("--allocated-minutes", "-m", type=click.IntRange(min=1), default=None)
@click.option(
    "--time-spent",
    type=click.FloatRange(min=0.0),
    default=None,
    help="Correct the minutes already logged.",
)
@click.pass_obj
def edit(
    obj: CliContext,
    ticket_id: str,
    name: Optional[str],
    story_points: Optional[int],
    allocated_minutes: Optional[int],
    time_spent: Optional[float],
) -> None:
    """Edit a pending ticket; omitted options keep their current value."""
    if name is None and story_points is None and allocated_minutes is None and time_spent is None:
        raise click.UsageError("Nothing to change; pass at least one option.")
    try:
        item = obj.store.edit_ticket(
            ticket_id,
            name=name,
            story_points=story_points,
            allocated_time_minutes=allocated_minutes,
            time_spent=time_spent,
        )
    except (StoreError, ValueError) as error:
        obj.logger.error("Failed to edit ticket: %s", error)
        raise click.exceptions.Exit(1)
    click.echo(click.style(f"Ticket updated: {item.id} ({item.name})", fg="green"))


@cli.command(name="list")
@click.option("--all/--pending", "show_all", default=False, help="Include completed tickets.")
@click.pass_obj
def list_tickets(obj: CliContext, show_all: bool) -> None:
    """List tickets."""
    tickets = [
        item for item in obj.store.list_tickets() if show_all or not item.completed
    ]
    if not tickets:
        click.echo(click.style("No tickets yet. Add some first!", fg="yellow"))
        return
    for item in tickets:
        status = (
            click.style("Completed", fg="green")
            if item.completed
            else click.style("Pending", fg="yellow")
        )
        click.echo(
            f"{item.id}  {item.name[:24]:<24}  SP {item.story_points:<3} "
            f"{item.allocated_time_minutes:>4} min allocated  "
            f"{item.time_spent:>6.1f} min spent  {status}"
        )


@cli.command()
@click.option("--name", default=None, help="Set your display name.")
@click.pass_obj
def profile(obj: CliContext, name: Optional[str]) -> None:
    """Show or update the user profile."""
    user = obj.store.get_user()
    if name is not None:
        user = replace(user, name=name.strip())
        try:
            obj.store.save_user(user)
        except StoreError as error:
            obj.logger.error("Failed to save profile: %s", error)
            raise click.exceptions.Exit(1)
        click.echo(click.style("Profile updated.", fg="green"))
    click.echo(f"Name: {user.name or 'Anonymous'}")
    click.echo(f"Level: {user.level} | XP: {user.xp}")


@cli.command()
@click.pass_obj
def stats(obj: CliContext) -> None:
    """Show aggregate statistics."""
    totals = obj.store.get_stats()
    rows = [
        ("Tickets solved", str(totals.total_tickets_solved)),
        ("Story points completed", str(totals.total_story_points)),
        ("Total time taken", f"{totals.total_time_taken:.1f} min"),
        ("Total overtime", f"{totals.total_overtime:.1f} min"),
    ]
    if totals.total_tickets_solved > 0:
        average = totals.total_time_taken / totals.total_tickets_solved
        rows.append(("Average time per ticket", f"{average:.1f} min"))
    rows.append(("Tickets pending", str(totals.total_tickets_pending)))
    rows.append(("Story points pending", str(totals.total_story_points_pending)))
    for label, value in rows:
        click.echo(f"{label:<26}{value}")


@cli.command()
@click.argument("ticket_id")
@click.pass_obj
def focus(obj: CliContext, ticket_id: str) -> None:
    """Run a pomodoro focus session on TICKET_ID."""
    logger = obj.logger
    try:
        ticket = obj.store.get_ticket(ticket_id)
    except TicketNotFoundError as error:
        logger.error("%s", error)
        raise click.exceptions.Exit(1)

    ui_server = _start_ui_server(obj)
    try:
        dependencies = FocusSessionDependencies(
            logger=logger,
            app_config=obj.app_config,
            tickets=obj.store,
            progression=obj.store,
            ui=RuntimeUIPublisher(ui_server, ticket_id=ticket.id),
            render_sinks=(TerminalRenderSink(ticket.name),),
        )
        try:
            session = FocusSession(ticket.id, dependencies)
        except TicketAlreadyCompletedError as error:
            logger.error("%s", error)
            raise click.exceptions.Exit(1)

        try:
            outcome = session.run()
        except SettlementPersistenceError as error:
            logger.error("Settlement could not be saved: %s", error)
            if error.result is None:
                click.echo(
                    click.style("Warning: progress may be only partly saved to disk.", fg="red")
                )
            else:
                _echo_settlement(error.result)
                click.echo(click.style("Warning: progress was not saved to disk.", fg="red"))
            raise click.exceptions.Exit(1)
        except SettlementError as error:
            logger.error("Settlement failed: %s", error)
            raise click.exceptions.Exit(1)
    finally:
        if ui_server is not None:
            ui_server.stop(timeout_seconds=5.0)

    if outcome.status == SESSION_COMPLETED and outcome.settlement is not None:
        _echo_settlement(outcome.settlement)
    else:
        click.echo(click.style("Session ended without saving.", fg="yellow"))


def _echo_settlement(result) -> None:
    for line in settlement_lines(result):
        click.echo(line)


def _start_ui_server(obj: CliContext) -> Optional[UIServer]:
    try:
        config = UIServerConfig.from_settings(obj.app_config.ui_server)
    except ServerConfigurationError as error:
        obj.logger.error("UI server configuration error: %s", error)
        obj.logger.warning("Continuing without UI server.")
        return None

    if not config.enabled:
        return None

    ui_server = UIServer(config=config, logger=logging.getLogger("ui_server"))
    try:
        ui_server.start(timeout_seconds=5.0)
    except RuntimeError as error:
        obj.logger.error("UI server startup failed: %s", error)
        obj.logger.warning("Continuing without UI server.")
        return None
    obj.logger.info("UI server ready at %s", ui_server.url)
    return ui_server


if __name__ == "__main__":
    cli()
