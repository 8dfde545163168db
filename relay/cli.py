from __future__ import annotations
import asyncio
import typer
from rich import print
from rich.table import Table
from relay.config import DEFAULT_CONFIG_PATH, Settings, load_settings
from relay.core.relay import Relay
from relay.errors import ConfigError, StartupConnectError
from relay.observability import metrics
from relay.observability.logging import configure_logging, get_logger

app = typer.Typer(help="Relay chat between IRC, Gitter, Telegram and XMPP.")
log = get_logger("cli")

ConfigOption = typer.Option(DEFAULT_CONFIG_PATH, "--config", "-c", envvar="RELAY_CONFIG", help="Path to config.json.")

def _load_or_exit(path: str) -> Settings:
    try:
        return load_settings(path)
    except ConfigError as e:
        configure_logging()
        log.error("config_invalid", path=path, error=str(e))
        raise typer.Exit(code=1)

@app.command()
def run(config: str = ConfigOption):
    """Connect to all four networks and relay until interrupted."""
    settings = _load_or_exit(config)
    configure_logging(settings.log_level, settings.json_logs)
    if settings.metrics_port:
        metrics.serve(settings.metrics_port)
        log.info("metrics_listening", port=settings.metrics_port)
    try:
        asyncio.run(Relay(settings).run())
    except StartupConnectError as e:
        log.error("startup_failed", network=e.network, error=str(e))
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        log.info("relay_stopped")

@app.command()
def check(config: str = ConfigOption):
    """Validate the configuration and print the networks it bridges."""
    settings = _load_or_exit(config)
    t = Table(title="Relay networks")
    t.add_column("network"); t.add_column("server"); t.add_column("room"); t.add_column("nick")
    t.add_row("irc", settings.irc.server, settings.irc.channel, settings.irc.nick)
    t.add_row("gitter", settings.gitter.server, settings.gitter.channel, settings.gitter.nick)
    t.add_row("telegram", "api.telegram.org", str(settings.telegram.group_id or "unset (use /start)"), "-")
    t.add_row("xmpp", settings.xmpp.server, settings.xmpp.muc, settings.xmpp.nick)
    print(t)
    print(f"admins: {', '.join(settings.telegram.admins) or '-'}")
    print(f"photo upload: {'imgur' if settings.telegram.imgur_client_id else 'disabled'}")

def main():
    """Entry point for the CLI."""
    app()
