"""
Realm server command-line interface.

Runs the API server and the scheduled world jobs. Every job command opens
its own session and commits when the job finishes, so they can be driven
by cron as well as by the in-process workers.
"""

import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from datetime import date
from typing import Any

import click
from sqlalchemy.ext.asyncio import AsyncSession

from .config import get_config
from .database import close_db, get_session_maker, init_db
from .structured_logging.enhanced_logging_config import get_logger, setup_enhanced_logging

logger = get_logger(__name__)


def _run_job(job: Callable[[AsyncSession], Awaitable[Any]]) -> Any:
    """Run ``job`` in a fresh unit of work and commit it."""

    async def _runner() -> Any:
        await init_db()
        try:
            async with get_session_maker()() as session:
                result = await job(session)
                await session.commit()
                logger.info("CLI job committed", job=getattr(job, "__name__", "job"))
                return result
        finally:
            await close_db()

    return asyncio.run(_runner())


def _echo(result: Any) -> None:
    click.echo(json.dumps(result, indent=2, default=str))


@click.group()
@click.option("--log-level", default=None, help="Override the configured log level")
@click.pass_context
def main(ctx, log_level: str | None):
    """
    Realm server - persistent-world RPG backend

    Serve the API or run one of the world maintenance jobs by hand.
    """
    ctx.ensure_object(dict)
    config = get_config()
    log_config = config.to_dict()
    if log_level:
        log_config["logging"]["level"] = log_level.upper()
    setup_enhanced_logging(log_config)
    ctx.obj["config"] = config


@main.command()
@click.option("--host", default=None, help="Bind address (defaults to SERVER_HOST)")
@click.option("--port", type=int, default=None, help="Port (defaults to SERVER_PORT)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
@click.pass_context
def serve(ctx, host: str | None, port: int | None, reload: bool):
    """Run the HTTP API with uvicorn."""
    import uvicorn  # pylint: disable=import-outside-toplevel

    config = ctx.obj["config"]
    uvicorn.run(
        "realm.main:app",
        host=host or config.server.host,
        port=port or config.server.port,
        reload=reload,
    )


@main.command("init-db")
def init_db_command():
    """Create every table."""

    async def _create() -> None:
        await init_db()
        await close_db()

    asyncio.run(_create())
    click.echo("Database initialized.")


@main.command()
def seed():
    """Load the starter world, items, monsters, roles, a religion and a player."""
    from .seed import seed_all  # pylint: disable=import-outside-toplevel

    _echo(_run_job(seed_all))


@main.group()
def world():
    """Calendar and world simulation."""


@world.command()
@click.option("--force", is_flag=True, help="Advance even if the tick interval has not elapsed")
@click.pass_context
def tick(ctx, force: bool):
    """Advance the calendar one week when a tick is due."""
    from .game.calendar_service import CalendarService  # pylint: disable=import-outside-toplevel

    interval = ctx.obj["config"].game.world_tick_interval_seconds

    async def _tick(session: AsyncSession):
        return await CalendarService(session, tick_interval_seconds=interval).process_tick(force=force)

    result = _run_job(_tick)
    if result is None:
        click.echo("No tick due.")
        return
    _echo(result)


@world.command("advance-week")
def advance_week():
    """Advance the calendar one week without running the simulation."""
    from .game.calendar_service import CalendarService  # pylint: disable=import-outside-toplevel

    async def _advance(session: AsyncSession):
        return await CalendarService(session, run_simulation=False).advance_week()

    _echo(_run_job(_advance))


@world.command("set-date")
@click.argument("year", type=int)
@click.argument("season", type=click.Choice(["spring", "summer", "autumn", "winter"]))
@click.argument("week", type=int)
@click.option("--day", type=int, default=1)
def set_date(year: int, season: str, week: int, day: int):
    """Jump the calendar to a date."""
    from .game.calendar_service import CalendarService, format_date  # pylint: disable=import-outside-toplevel

    async def _set(session: AsyncSession):
        state = await CalendarService(session).set_date(year, season, week, day)
        return format_date(state)

    try:
        click.echo(_run_job(_set))
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


@main.group()
def decay():
    """Stockpile and inventory decay."""


@decay.command("run")
def decay_run():
    """Apply one week of decay and spoilage."""
    from .game.resource_decay_service import ResourceDecayService  # pylint: disable=import-outside-toplevel

    _echo(_run_job(lambda session: ResourceDecayService(session).process_weekly_decay()))


@main.group()
def energy():
    """Player energy."""


@energy.command("regenerate")
@click.pass_context
def energy_regenerate(ctx):
    """Regenerate energy for every player below the cap."""
    from .game.energy_service import EnergyService  # pylint: disable=import-outside-toplevel

    minutes = ctx.obj["config"].game.energy_regen_minutes
    count = _run_job(lambda session: EnergyService(session, regen_minutes=minutes).regenerate_all_players())
    click.echo(f"Regenerated energy for {count} players.")


@main.group()
def hq():
    """Religion headquarters."""


@hq.command("complete-construction")
def hq_complete_construction():
    """Finish HQ projects whose construction timer has run out."""
    from .game.religion_headquarters_service import (  # pylint: disable=import-outside-toplevel
        ReligionHeadquartersService,
    )

    count = _run_job(lambda session: ReligionHeadquartersService(session).complete_due_constructions())
    click.echo(f"Completed {count} construction projects.")


@main.group()
def minigames():
    """Tavern minigames."""


@minigames.command("distribute-rewards")
@click.option("--minigame", default="archery", show_default=True)
@click.option(
    "--date", "on_date", type=click.DateTime(formats=["%Y-%m-%d"]), default=None, help="Run as if today were this date"
)
def distribute_rewards(minigame: str, on_date):
    """Hand out leaderboard rewards for the periods that just closed."""
    from .game.minigame_service import MinigameService  # pylint: disable=import-outside-toplevel

    today: date | None = on_date.date() if on_date else None
    _echo(_run_job(lambda session: MinigameService(session).distribute_rewards(minigame, today=today)))


@main.group()
def house():
    """Player housing."""


@house.command("process-upkeep")
def house_process_upkeep():
    """Degrade houses whose upkeep is overdue."""
    from .game.house_service import HouseService  # pylint: disable=import-outside-toplevel

    _echo(_run_job(lambda session: HouseService(session).process_upkeep_degradation()))


@main.group()
def servants():
    """House servants."""


@servants.command("process-wages")
def servants_process_wages():
    """Collect weekly wages; unpaid servants go on strike."""
    from .game.servant_service import ServantService  # pylint: disable=import-outside-toplevel

    _echo(_run_job(lambda session: ServantService(session).process_weekly_wages()))


@servants.command("process-tasks")
def servants_process_tasks():
    """Complete servant tasks whose time is up."""
    from .game.servant_service import ServantService  # pylint: disable=import-outside-toplevel

    count = _run_job(lambda session: ServantService(session).process_due_tasks())
    click.echo(f"Completed {count} servant tasks.")


@main.group()
def roles():
    """Offices and petitions."""


@roles.command("pay-salaries")
def roles_pay_salaries():
    """Pay one salary to every active office holder."""
    from .game.role_service import RoleService  # pylint: disable=import-outside-toplevel

    paid = _run_job(lambda session: RoleService(session).pay_salaries())
    click.echo(f"Paid {len(paid)} salaries.")


@roles.command("expire-petitions")
def roles_expire_petitions():
    """Expire petitions nobody answered in time."""
    from .game.role_petition_service import RolePetitionService  # pylint: disable=import-outside-toplevel

    count = _run_job(lambda session: RolePetitionService(session).expire_stale_petitions())
    click.echo(f"Expired {count} petitions.")


@main.group()
def taxes():
    """Daily taxes and location treasuries."""


@taxes.command("collect")
@click.option(
    "--date", "on_date", type=click.DateTime(formats=["%Y-%m-%d"]), default=None, help="Collect for this day"
)
def taxes_collect(on_date):
    """Collect income tax from residents and pass shares up to baronies and kingdoms."""
    from .game.tax_service import TaxService  # pylint: disable=import-outside-toplevel

    today: date | None = on_date.date() if on_date else None
    _echo(_run_job(lambda session: TaxService(session).collect_daily_taxes(today=today)))


if __name__ == "__main__":
    sys.exit(main())  # pylint: disable=no-value-for-parameter
