"""CLI commands for wx-autoreply."""

import asyncio
import sys
from datetime import datetime

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from wx_autoreply import __brand__, __logo__, __version__

app = typer.Typer(
    name="wx-autoreply",
    help=f"{__logo__} {__brand__} - Offline chat auto-reply",
    no_args_is_help=True,
)

console = Console()


def _cli_fail(cause: str, fix: str | None = None, *, exit_code: int = 1) -> None:
    """Print a consistent CLI error block and exit."""
    console.print(f"[red]{cause}[/red]")
    if fix:
        console.print(f"[dim]Fix: {fix}[/dim]")
    raise typer.Exit(exit_code)


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


def _format_ts(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


def _stores(config):
    from wx_autoreply.storage import ContactStore, ConversationStore, OutcomeLog

    workspace = config.workspace_path
    history = ConversationStore(workspace)
    contacts = ContactStore(workspace, history=history)
    return contacts, history, OutcomeLog(workspace)


def _resolve_contact(contacts, ref: str):
    """Find a contact by id, then by exact name."""
    contact = contacts.get(ref)
    if contact is None:
        contact = next((c for c in contacts.contacts() if c.name == ref), None)
    if contact is None:
        _cli_fail(f"Contact not found: {ref}", "Run `wx-autoreply contacts list` to see contacts.")
    return contact


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} {__brand__} v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(None, "--version", "-v", callback=version_callback, is_eager=True),
):
    """wx-autoreply - Offline chat auto-reply."""
    pass


@app.command("version")
def version_command():
    """Show version."""
    console.print(f"{__logo__} {__brand__} v{__version__}")


@app.command()
def onboard():
    """Write the default configuration and workspace."""
    from wx_autoreply.config.loader import get_config_path, load_config, save_config
    from wx_autoreply.utils.helpers import ensure_dir

    config_path = get_config_path()
    config = load_config()
    save_config(config, config_path)
    ensure_dir(config.workspace_path)
    ensure_dir(config.model.models_path)
    console.print(f"[green]✓[/green] Config: {config_path}")
    console.print(f"[green]✓[/green] Workspace: {config.workspace_path}")
    console.print(f"[green]✓[/green] Models dir: {config.model.models_path}")
    console.print("\nNext: `wx-autoreply models download` then `wx-autoreply contacts add <name>`")


@app.command()
def status():
    """Show wx-autoreply status."""
    from wx_autoreply.config.loader import get_config_path, get_data_dir, load_config
    from wx_autoreply.engine.models import ModelStore, find_model

    data_dir = get_data_dir()
    config_path = get_config_path()
    config = load_config()
    workspace = config.workspace_path

    console.print(f"{__logo__} {__brand__} Status\n")
    console.print(
        f"Data dir: {data_dir} {'[green]✓[/green]' if data_dir.exists() else '[red]✗[/red]'}"
    )
    console.print(
        f"Config: {config_path} {'[green]✓[/green]' if config_path.exists() else '[red]✗[/red]'}"
    )
    console.print(
        f"Workspace: {workspace} {'[green]✓[/green]' if workspace.exists() else '[red]✗[/red]'}"
    )

    reply = config.reply
    console.print(
        f"Auto-reply: {'[green]✓ enabled[/green]' if reply.enabled else '[yellow]disabled[/yellow]'}"
    )

    store = ModelStore(config.model.models_path)
    model_id = config.model.selected_model_id
    info = find_model(model_id)
    model_path = store.path_by_id(model_id)
    model_label = info.name if info else model_id
    console.print(
        f"Model: {model_label} "
        f"{'[green]✓ ' + model_path + '[/green]' if model_path else '[red]not downloaded[/red]'}"
    )
    console.print(
        f"Inference: threads={config.model.inference_threads}, ctx={config.model.context_length}, "
        f"maxTokens={config.model.max_tokens}, temperature={config.model.temperature}"
    )
    console.print(f"Work hours: {reply.work_hour_start}:00-{reply.work_hour_end}:59")
    console.print(f"Delay: {reply.min_delay_seconds}-{reply.max_delay_seconds}s")

    contacts, _history, reply_log = _stores(config)
    enabled = len(contacts.enabled())
    console.print(f"Contacts: {enabled} enabled / {len(contacts.contacts())} total")
    console.print(
        f"Today: {reply_log.today_success_count()} / {reply.max_daily_replies} replies, "
        f"{reply.max_per_minute} per minute per sender"
    )
    bridge = config.bridge
    console.print(
        f"Bridge: {'[green]✓ enabled[/green]' if bridge.enabled else '[dim]disabled[/dim]'} ({bridge.bridge_url})"
    )


def _set_enabled(value: bool) -> None:
    from wx_autoreply.config.loader import load_config, save_config

    config = load_config()
    config.reply.enabled = value
    save_config(config)
    state = "[green]enabled[/green]" if value else "[yellow]disabled[/yellow]"
    console.print(f"Auto-reply {state}")


@app.command()
def enable():
    """Turn the auto-reply master switch on."""
    _set_enabled(True)


@app.command()
def disable():
    """Turn the auto-reply master switch off."""
    _set_enabled(False)


# ============================================================================
# Contacts
# ============================================================================

contacts_app = typer.Typer(help="Manage whitelisted contacts")
app.add_typer(contacts_app, name="contacts")


@contacts_app.callback(invoke_without_command=True)
def contacts_main(ctx: typer.Context):
    """Manage whitelisted contacts."""
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)


@contacts_app.command("list")
def contacts_list():
    """List contacts."""
    from wx_autoreply.config.loader import load_config

    contacts, history, _ = _stores(load_config())
    items = contacts.contacts()
    if not items:
        console.print("No contacts. Add one with `wx-autoreply contacts add <name>`.")
        return

    table = Table(title="Contacts")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Enabled", style="green")
    table.add_column("Style", style="yellow")
    table.add_column("History")
    for contact in items:
        table.add_row(
            contact.id[:8],
            contact.name,
            "✓" if contact.enabled else "✗",
            contact.style,
            str(len(history.get(contact.id))),
        )
    console.print(table)


@contacts_app.command("add")
def contacts_add(
    name: str = typer.Argument(..., help="Name as shown in notification titles"),
    style: str = typer.Option(None, "--style", "-s", help="Reply style description"),
    disabled: bool = typer.Option(False, "--disabled", help="Add without enabling"),
):
    """Add a contact to the whitelist."""
    from wx_autoreply.config.loader import load_config
    from wx_autoreply.storage.models import Correspondent

    contacts, _, _ = _stores(load_config())
    if not name.strip():
        _cli_fail("Contact name must not be empty.")
    fields = {"name": name.strip(), "enabled": not disabled}
    if style:
        fields["style"] = style
    contact = contacts.add(Correspondent(**fields))
    console.print(f"[green]✓[/green] Added {contact.name} ({contact.id})")


@contacts_app.command("remove")
def contacts_remove(ref: str = typer.Argument(..., help="Contact id or name")):
    """Remove a contact and its conversation history."""
    from wx_autoreply.config.loader import load_config

    contacts, _, _ = _stores(load_config())
    contact = _resolve_contact(contacts, ref)
    contacts.remove(contact.id)
    console.print(f"[green]✓[/green] Removed {contact.name}")


@contacts_app.command("toggle")
def contacts_toggle(ref: str = typer.Argument(..., help="Contact id or name")):
    """Enable or disable auto-reply for a contact."""
    from wx_autoreply.config.loader import load_config

    contacts, _, _ = _stores(load_config())
    contact = _resolve_contact(contacts, ref)
    enabled = contacts.toggle(contact.id)
    console.print(f"{contact.name}: {'[green]enabled[/green]' if enabled else '[yellow]disabled[/yellow]'}")


@contacts_app.command("style")
def contacts_style(
    ref: str = typer.Argument(..., help="Contact id or name"),
    style: str = typer.Argument(..., help="New reply style description"),
):
    """Change a contact's reply style."""
    from wx_autoreply.config.loader import load_config

    contacts, _, _ = _stores(load_config())
    contact = _resolve_contact(contacts, ref)
    contacts.update(contact.model_copy(update={"style": style}))
    console.print(f"[green]✓[/green] Updated style for {contact.name}")


# ============================================================================
# History
# ============================================================================

history_app = typer.Typer(help="Inspect conversation history")
app.add_typer(history_app, name="history")


@history_app.callback(invoke_without_command=True)
def history_main(ctx: typer.Context):
    """Inspect conversation history."""
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)


@history_app.command("show")
def history_show(ref: str = typer.Argument(..., help="Contact id or name")):
    """Show the conversation window kept for a contact."""
    from wx_autoreply.config.loader import load_config

    contacts, history, _ = _stores(load_config())
    contact = _resolve_contact(contacts, ref)
    turns = history.get(contact.id)
    if not turns:
        console.print(f"No history for {contact.name}.")
        return
    for turn in turns:
        color = "cyan" if turn.role == "user" else "green"
        console.print(f"[dim]{_format_ts(turn.timestamp)}[/dim] [{color}]{turn.role}[/{color}]: {turn.content}")


@history_app.command("clear")
def history_clear(ref: str = typer.Argument(..., help="Contact id or name")):
    """Clear a contact's conversation history."""
    from wx_autoreply.config.loader import load_config

    contacts, history, _ = _stores(load_config())
    contact = _resolve_contact(contacts, ref)
    history.clear(contact.id)
    console.print(f"[green]✓[/green] Cleared history for {contact.name}")


# ============================================================================
# Reply logs
# ============================================================================

logs_app = typer.Typer(help="Inspect reply outcome logs")
app.add_typer(logs_app, name="logs")


@logs_app.callback(invoke_without_command=True)
def logs_main(ctx: typer.Context):
    """Inspect reply outcome logs."""
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)


@logs_app.command("list")
def logs_list(limit: int = typer.Option(20, "--limit", "-n", help="Entries to show")):
    """Show recent reply outcomes, newest first."""
    from wx_autoreply.config.loader import load_config

    _, _, reply_log = _stores(load_config())
    entries = reply_log.entries()[: max(0, limit)]
    if not entries:
        console.print("No reply logs.")
        return

    table = Table(title="Reply Log")
    table.add_column("Time", style="dim")
    table.add_column("Contact", style="cyan")
    table.add_column("Received")
    table.add_column("Replied")
    table.add_column("OK")
    for entry in entries:
        table.add_row(
            _format_ts(entry.timestamp),
            entry.contact_name,
            entry.received_message,
            entry.replied_message,
            "[green]✓[/green]" if entry.success else "[red]✗[/red]",
        )
    console.print(table)


@logs_app.command("clear")
def logs_clear():
    """Delete all reply logs."""
    from wx_autoreply.config.loader import load_config

    _, _, reply_log = _stores(load_config())
    reply_log.clear()
    console.print("[green]✓[/green] Reply logs cleared")


# ============================================================================
# Models
# ============================================================================

models_app = typer.Typer(help="Manage local model files")
app.add_typer(models_app, name="models")


@models_app.callback(invoke_without_command=True)
def models_main(ctx: typer.Context):
    """Manage local model files."""
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)


@models_app.command("list")
def models_list():
    """List known models and their download state."""
    from wx_autoreply.config.loader import load_config
    from wx_autoreply.engine.models import AVAILABLE_MODELS, ModelStore, format_size

    config = load_config()
    store = ModelStore(config.model.models_path)

    table = Table(title="Models")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Size")
    table.add_column("Downloaded", style="green")
    table.add_column("Selected")
    for info in AVAILABLE_MODELS:
        table.add_row(
            info.id,
            info.name,
            format_size(info.size_bytes),
            "✓" if store.is_downloaded(info) else "✗",
            "●" if info.id == config.model.selected_model_id else "",
        )
    console.print(table)
    console.print(f"Storage used: {format_size(store.used_bytes())} in {store.models_dir}")


@models_app.command("download")
def models_download(
    model_id: str = typer.Argument(None, help="Model id (defaults to the selected model)"),
    select: bool = typer.Option(True, "--select/--no-select", help="Select after download"),
):
    """Download a model file into local storage."""
    from rich.progress import BarColumn, DownloadColumn, Progress, TransferSpeedColumn

    from wx_autoreply.config.loader import load_config, save_config
    from wx_autoreply.engine.models import ModelStore, find_model

    config = load_config()
    target_id = model_id or config.model.selected_model_id
    info = find_model(target_id)
    if info is None:
        _cli_fail(f"Unknown model: {target_id}", "Run `wx-autoreply models list` for ids.")

    store = ModelStore(config.model.models_path)
    with Progress(
        "[progress.description]{task.description}",
        BarColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        console=console,
    ) as progress:
        task_id = progress.add_task(info.name, total=info.size_bytes)

        def on_progress(done: int, total: int) -> None:
            progress.update(task_id, completed=done, total=total or info.size_bytes)

        ok = store.download(info, on_progress=on_progress)

    if not ok:
        _cli_fail(f"Download failed: {info.name}", "Check connectivity and disk space, then retry.")
    if select:
        config.model.selected_model_id = info.id
        save_config(config)
    console.print(f"[green]✓[/green] {info.name} ready at {store.model_path(info)}")


@models_app.command("delete")
def models_delete(model_id: str = typer.Argument(..., help="Model id")):
    """Delete a downloaded model file."""
    from wx_autoreply.config.loader import load_config
    from wx_autoreply.engine.models import ModelStore, find_model

    config = load_config()
    info = find_model(model_id)
    if info is None:
        _cli_fail(f"Unknown model: {model_id}")
    if not ModelStore(config.model.models_path).delete(info):
        _cli_fail(f"Could not delete {info.file_name}")
    console.print(f"[green]✓[/green] Deleted {info.name}")


# ============================================================================
# Runtime
# ============================================================================


@app.command()
def reply(
    message: str = typer.Argument(..., help="Incoming message text"),
    contact_ref: str = typer.Option(None, "--contact", "-c", help="Contact id or name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Generate one reply locally without sending it."""
    from wx_autoreply.config.loader import load_config
    from wx_autoreply.engine.client import LocalReplyClient
    from wx_autoreply.storage.models import DEFAULT_STYLE

    _configure_logging(verbose)
    config = load_config()
    contacts, history, _ = _stores(config)
    name, style, turns = "friend", DEFAULT_STYLE, []
    if contact_ref:
        contact = _resolve_contact(contacts, contact_ref)
        name, style, turns = contact.name, contact.style, history.get(contact.id)

    client = LocalReplyClient(config)

    async def run() -> str:
        if not await client.initialize():
            _cli_fail(
                f"Model not available: {config.model.selected_model_id}",
                "Run `wx-autoreply models download`.",
            )
        try:
            return await client.generate_reply(name, style, turns, message)
        finally:
            await client.release()

    console.print(f"{__logo__} {asyncio.run(run())}")


@app.command()
def gateway(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Run the notification bridge and the auto-reply pipeline."""
    from wx_autoreply.bus.queue import NotificationBus
    from wx_autoreply.channels.bridge import NotificationBridgeChannel
    from wx_autoreply.config.loader import ConfigWatcher, get_config_path, load_config
    from wx_autoreply.engine.client import LocalReplyClient
    from wx_autoreply.pipeline.service import AutoReplyService

    _configure_logging(verbose)
    config = load_config()
    if not config.bridge.enabled:
        _cli_fail(
            "Notification bridge is disabled.",
            f"Set bridge.enabled=true in {get_config_path()}",
        )

    console.print(f"{__logo__} Starting {__brand__} gateway...")

    bus = NotificationBus(maxsize=config.intake.queue_size)
    contacts, history, reply_log = _stores(config)
    client = LocalReplyClient(config)
    service = AutoReplyService(
        config, bus, client, contacts, history, reply_log, watcher=ConfigWatcher(get_config_path())
    )
    channel = NotificationBridgeChannel(config.bridge, bus)

    async def run() -> None:
        tasks = []
        if await client.initialize():
            console.print(f"[green]✓[/green] Model loaded: {client.engine.model_path}")
        else:
            console.print(
                "[yellow]Model not loaded; replies are skipped until it is downloaded "
                "(checked every 30s).[/yellow]"
            )
            tasks.append(asyncio.create_task(client.wait_until_ready(30.0)))
        service_task = asyncio.create_task(service.run())
        channel_task = asyncio.create_task(channel.start())
        tasks.extend([service_task, channel_task])
        try:
            await asyncio.gather(service_task, channel_task)
        finally:
            await channel.stop()
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            await service.stop()
            await client.release()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\nShutting down...")


if __name__ == "__main__":
    app()
