"""Command line interface for the Hue bridge client."""

import asyncio
import os
import sys
from typing import Awaitable, Callable, List, Optional, Tuple, TypeVar

import httpx
import typer
from loguru import logger
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .bridge import DEFAULT_APP_LABEL, Bridge, connect
from .cache import BridgeCache
from .config import DiscoveryConfig
from .errors import HueError
from .groups import Group
from .lights import Light
from .state import State

T = TypeVar("T")

app = typer.Typer(help="Control a Philips Hue bridge on the local network")
light_app = typer.Typer(help="Inspect and control lights")
group_app = typer.Typer(help="Inspect and control groups")
app.add_typer(light_app, name="light")
app.add_typer(group_app, name="group")

console = Console()


def setup_logging(level: str) -> None:
    """Send logs to stderr, and to a rotating file when HUE_LOG_FILE is set."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> | {message}",
    )

    log_file = os.getenv("HUE_LOG_FILE")
    if log_file:
        logger.add(
            log_file,
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function}:{line} | {message}",
            rotation="10 MB",
            retention="1 week",
            compression="zip",
        )


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", envvar="HUE_LOG_LEVEL", help="Log level"),
) -> None:
    setup_logging(log_level.upper())


def _execute(action: Callable[[Bridge], Awaitable[T]], *, require_pairing: bool = True) -> T:
    """Discover the bridge, run ``action`` against it and report library errors."""
    config = DiscoveryConfig.from_env()

    async def runner() -> T:
        async with await connect(config) as bridge:
            if require_pairing and not bridge.is_paired:
                console.print("❌ Bridge is not paired yet. Run: hue pair")
                raise typer.Exit(1)
            return await action(bridge)

    try:
        return asyncio.run(runner())
    except HueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    except httpx.HTTPError as e:
        console.print(f"[red]Could not reach the bridge: {e}[/red]")
        raise typer.Exit(1)


def _build_state(**fields) -> State:
    try:
        return State(**{key: value for key, value in fields.items() if value is not None})
    except ValidationError as e:
        console.print(f"[red]Invalid state: {e}[/red]")
        raise typer.Exit(2)


def _mask(username: str) -> str:
    if len(username) <= 8:
        return "*" * len(username)
    return "*" * (len(username) - 8) + username[-8:]


@app.command()
def discover() -> None:
    """Find the bridge and show how it was reached."""

    async def action(bridge: Bridge) -> None:
        status = "✅ paired" if bridge.is_paired else "⚠️  not paired"
        console.print(
            Panel.fit(
                f"ID: {bridge.id}\nAddress: {bridge.address}\nStatus: {status}",
                title="Bridge",
                border_style="green",
            )
        )

    _execute(action, require_pairing=False)


@app.command()
def pair(
    app_label: str = typer.Option(DEFAULT_APP_LABEL, "--app", help="Application name shown on the bridge"),
    force: bool = typer.Option(False, help="Pair again even if already paired"),
) -> None:
    """Pair with the bridge and cache the issued username."""

    async def action(bridge: Bridge) -> None:
        if bridge.is_paired and not force:
            console.print(f"✅ Already paired with bridge {bridge.id}")
            return
        await asyncio.to_thread(
            console.input, "Press the link button on the bridge, then press ENTER to continue..."
        )
        paired = await bridge.pair_as(app_label)
        console.print(f"✅ Paired with bridge {paired.id} as {_mask(paired.username)}")

    _execute(action, require_pairing=False)


@app.command()
def forget() -> None:
    """Delete the cached bridge so the next run discovers and pairs again."""
    config = DiscoveryConfig.from_env()
    cache = BridgeCache(config.cache_path, config.cache_filename)
    if cache.forget():
        console.print("✅ Bridge cache removed")
    else:
        console.print("ℹ️  No bridge cache to remove")


@app.command()
def info() -> None:
    """Show the settings in use and the cached bridge."""
    config = DiscoveryConfig.from_env()
    cache = BridgeCache(config.cache_path, config.cache_filename)

    console.print(f"🔎 Search: {config.multicast_host}:{config.multicast_port} ({config.search_deadline:g}s)")
    console.print(f"🌐 Remote lookup: {config.remote_url}")
    try:
        console.print(f"📁 Cache file: {cache.path}")
    except RuntimeError as e:
        console.print(f"📁 Cache file: unavailable ({e})")

    cached = cache.load()
    if cached is None:
        console.print("   ❌ No cached bridge")
        return
    console.print(f"   📍 Bridge: {cached.id} at {cached.address}")
    console.print(f"   🔑 Username: {_mask(cached.username) or '(not paired)'}")


def _light_table(lights: List[Light]) -> Table:
    table = Table(title="Lights")
    for column in ("ID", "Name", "On", "Brightness", "Reachable", "Type"):
        table.add_column(column)
    for light in sorted(lights, key=lambda l: l.id):
        table.add_row(
            light.id,
            light.name,
            "🟢" if light.state.on else "⚫",
            str(light.state.brightness),
            "yes" if light.state.reachable else "no",
            light.type,
        )
    return table


@light_app.command("list")
def light_list() -> None:
    """List every light."""

    async def action(bridge: Bridge) -> None:
        console.print(_light_table(await bridge.lights.list()))

    _execute(action)


def _switch_lights(name: Optional[str], verb: str) -> None:
    async def action(bridge: Bridge) -> None:
        if name is None:
            await getattr(bridge.lights, verb)()
            console.print(f"✅ All lights: {verb}")
            return
        light = await bridge.lights.get(name)
        await getattr(light, verb)()
        console.print(f"✅ {light.name}: {verb}")

    _execute(action)


@light_app.command("on")
def light_on(name: Optional[str] = typer.Argument(None, help="Light name; all lights when omitted")) -> None:
    """Turn a light, or every light, on."""
    _switch_lights(name, "on")


@light_app.command("off")
def light_off(name: Optional[str] = typer.Argument(None, help="Light name; all lights when omitted")) -> None:
    """Turn a light, or every light, off."""
    _switch_lights(name, "off")


@light_app.command("toggle")
def light_toggle(name: Optional[str] = typer.Argument(None, help="Light name; all lights when omitted")) -> None:
    """Toggle a light, or every light."""
    _switch_lights(name, "toggle")


@light_app.command("set")
def light_set(
    name: str = typer.Argument(..., help="Light name"),
    brightness: Optional[int] = typer.Option(None, "--brightness", "-b", help="1-254"),
    hue: Optional[int] = typer.Option(None, help="0-65535"),
    saturation: Optional[int] = typer.Option(None, "--sat", help="0-254"),
    xy: Optional[Tuple[float, float]] = typer.Option(None, help="CIE x and y"),
    color_temp: Optional[int] = typer.Option(None, "--ct", help="153-500 mired"),
    effect: Optional[str] = typer.Option(None, help="none or colorloop"),
    alert: Optional[str] = typer.Option(None, help="none, select or lselect"),
    transition_time: Optional[int] = typer.Option(None, "--transition", help="Steps of 100ms"),
) -> None:
    """Change brightness, color, effect or alert of a light."""
    state = _build_state(
        brightness=brightness,
        hue=hue,
        saturation=saturation,
        xy=xy,
        color_temp=color_temp,
        effect=effect,
        alert=alert,
        transition_time=transition_time,
    )

    async def action(bridge: Bridge) -> None:
        light = await bridge.lights.get(name)
        await light.set(state)
        console.print(f"✅ {light.name}: {state.to_payload()}")

    _execute(action)


@light_app.command("rename")
def light_rename(name: str, new_name: str) -> None:
    """Rename a light."""

    async def action(bridge: Bridge) -> None:
        light = await bridge.lights.get(name)
        await light.rename(new_name)
        console.print(f"✅ Renamed {name} to {new_name}")

    _execute(action)


@light_app.command("scan")
def light_scan() -> None:
    """Ask the bridge to look for new lights."""

    async def action(bridge: Bridge) -> None:
        await bridge.lights.scan()
        console.print("🔍 Searching for new lights; run 'hue light list' in a minute")

    _execute(action)


def _group_table(groups: List[Group]) -> Table:
    table = Table(title="Groups")
    for column in ("ID", "Name", "Type", "Lights", "On"):
        table.add_column(column)
    for group in sorted(groups, key=lambda g: g.id):
        on = group.action is not None and group.action.on
        table.add_row(group.id, group.name, group.type, ", ".join(group.lights), "🟢" if on else "⚫")
    return table


@group_app.command("list")
def group_list() -> None:
    """List every group."""

    async def action(bridge: Bridge) -> None:
        console.print(_group_table(await bridge.groups.list()))

    _execute(action)


def _switch_group(name: str, verb: str) -> None:
    async def action(bridge: Bridge) -> None:
        group = await bridge.groups.get(name)
        await getattr(group, verb)()
        console.print(f"✅ {group.name}: {verb}")

    _execute(action)


@group_app.command("on")
def group_on(name: str) -> None:
    """Turn every light in a group on."""
    _switch_group(name, "on")


@group_app.command("off")
def group_off(name: str) -> None:
    """Turn every light in a group off."""
    _switch_group(name, "off")


@group_app.command("toggle")
def group_toggle(name: str) -> None:
    _switch_group(name, "toggle")


@group_app.command("set")
def group_set(
    name: str = typer.Argument(..., help="Group name"),
    brightness: Optional[int] = typer.Option(None, "--brightness", "-b", help="1-254"),
    xy: Optional[Tuple[float, float]] = typer.Option(None, help="CIE x and y"),
    color_temp: Optional[int] = typer.Option(None, "--ct", help="153-500 mired"),
    effect: Optional[str] = typer.Option(None, help="none or colorloop"),
    transition_time: Optional[int] = typer.Option(None, "--transition", help="Steps of 100ms"),
) -> None:
    """Change brightness, color or effect of a whole group."""
    state = _build_state(
        brightness=brightness,
        xy=xy,
        color_temp=color_temp,
        effect=effect,
        transition_time=transition_time,
    )

    async def action(bridge: Bridge) -> None:
        group = await bridge.groups.get(name)
        await group.set(state)
        console.print(f"✅ {group.name}: {state.to_payload()}")

    _execute(action)


if __name__ == "__main__":
    app()
