"""CLI entry point for Corvus, the Solana DeFi assistant."""

from __future__ import annotations

import asyncio
import json
import sys

import click
from dotenv import load_dotenv

from corvus.config import ConfigError, ConfigManager, coerce_value
from corvus.core import ChatSessionManager, SessionLimitError
from corvus.display import Display
from corvus.handlers import WalletTools
from corvus.log import setup_logging
from corvus.models import MODEL_REGISTRY, PROVIDERS, models_for
from corvus.providers import (
    ProviderConfigError,
    available_providers,
    create_client,
    validate_provider,
)
from corvus.storage import SessionStorage
from corvus.streaming import display_stream
from corvus.tools import ToolDispatcher

EXIT_WORDS = ("exit", "quit")


@click.group()
@click.version_option(package_name="corvus-agent")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging on stderr")
def main(verbose: bool):
    """Solana DeFi intelligence from the command line.

    Ask questions in natural language with `corvus chat`, or call a
    single tool directly (balance, tokens, price, ...).
    """
    load_dotenv()
    setup_logging(verbose)


# --- Direct tool commands ---

def _run_tool(tool: str, title: str, as_json: bool, **kwargs):
    async def call():
        tools = WalletTools()
        try:
            return await getattr(tools, tool)(**kwargs)
        finally:
            await tools.aclose()

    result = asyncio.run(call())
    Display().tool_result(title, result, as_json=as_json)
    data = json.loads(result)
    if isinstance(data, dict) and "error" in data:
        sys.exit(1)


json_option = click.option("--json", "as_json", is_flag=True, help="Output raw JSON")


@main.command()
@click.argument("wallet")
@json_option
def balance(wallet: str, as_json: bool):
    """Get SOL balance for a wallet."""
    _run_tool("get_sol_balance", "SOL Balance", as_json, wallet=wallet)


@main.command()
@click.argument("wallet")
@json_option
def tokens(wallet: str, as_json: bool):
    """Get all SPL token holdings for a wallet."""
    _run_tool("get_token_balances", "Token Holdings", as_json, wallet=wallet)


@main.command()
@click.argument("tokens")
@json_option
def price(tokens: str, as_json: bool):
    """Get current prices for tokens (comma-separated)."""
    _run_tool("get_token_price", "Token Prices", as_json, tokens=tokens)


@main.command()
@click.argument("wallet")
@click.option("--limit", "-l", type=int, default=10, help="Number of transactions (max 50)")
@json_option
def tx(wallet: str, limit: int, as_json: bool):
    """Get recent transaction history."""
    _run_tool("get_recent_transactions", "Recent Transactions", as_json,
              wallet=wallet, limit=limit)


@main.command()
@click.argument("wallet")
@json_option
def analyze(wallet: str, as_json: bool):
    """Analyze wallet DeFi positions in depth."""
    _run_tool("analyze_wallet_defi_positions", "DeFi Positions", as_json, wallet=wallet)


@main.command()
@click.argument("name")
@json_option
def protocol(name: str, as_json: bool):
    """Get TVL and metrics for a specific protocol."""
    _run_tool("get_protocol_tvl", "Protocol", as_json, protocol=name)


@main.command()
@click.option("--limit", "-l", type=int, default=10, help="Number of protocols (max 50)")
@click.option("--category", "-c", default=None, help="Filter: Lending, DEX, Liquid Staking, ...")
@json_option
def top(limit: int, category: str | None, as_json: bool):
    """Get top Solana DeFi protocols by TVL."""
    _run_tool("get_top_solana_protocols", "Top Solana Protocols", as_json,
              limit=limit, category=category)


@main.command()
@click.argument("chat_id")
@click.argument("message")
@click.option("--severity", "-s", type=click.Choice(["info", "warning", "critical"]),
              default="info", help="Severity level")
@json_option
def alert(chat_id: str, message: str, severity: str, as_json: bool):
    """Send a message to Telegram."""
    _run_tool("send_telegram_alert", "Telegram Alert", as_json,
              chat_id=chat_id, message=message, severity=severity)


# --- Chat ---

@main.command()
@click.option("--provider", "-p", default=None, help="LLM provider (anthropic, openai, google, groq, ollama)")
@click.option("--model", "-m", default=None, help="Model id (see `corvus models`)")
@click.option("--local", is_flag=True, help="Use a local Ollama server")
@click.option("--no-privacy-warning", is_flag=True, help="Skip the privacy warning")
@click.option("--save", "save_as", default=None, help="Save the conversation under this name on exit")
@click.option("--load", "load_from", default=None, help="Resume a saved conversation")
@click.option("--stream", is_flag=True, help="Stream responses as they are generated")
def chat(provider, model, local, no_privacy_warning, save_as, load_from, stream):
    """Start an interactive AI chat session.

    \b
    Examples:
      corvus chat
      corvus chat -p openai -m gpt-4o-mini --stream
      corvus chat --local --load yesterday
    """
    config = _config()
    display = Display(colors=config.get("ui.colors", True))

    provider = "ollama" if local else provider or config.get("llm.provider")
    model = model or config.get("llm.model")
    if provider:
        ok, error, suggestion = validate_provider(provider)
        if not ok:
            display.error(f"{error}. {suggestion}")
            sys.exit(1)

    try:
        client = create_client(provider, model, temperature=config.get("llm.temperature", 0.7))
    except ProviderConfigError as e:
        display.no_providers(str(e))
        sys.exit(1)

    asyncio.run(_chat_loop(
        client, display, config,
        privacy_warning=config.get("ui.privacy_warning", True) and not no_privacy_warning,
        save_as=save_as, load_from=load_from, stream=stream,
    ))


async def _chat_loop(client, display: Display, config: ConfigManager, privacy_warning: bool,
                     save_as: str | None, load_from: str | None, stream: bool):
    wallet_tools = WalletTools()
    storage = SessionStorage()
    manager = ChatSessionManager(
        client,
        ToolDispatcher(wallet_tools.handlers()),
        max_turns=config.get("chat.max_turns", 15),
        max_cost=config.get("chat.max_cost", 0.50),
        on_tool_call=display.tool_call,
    )

    display.banner(client.name, client.model, manager.max_turns, manager.max_cost)
    if privacy_warning:
        display.privacy_warning(client.name)
    if load_from:
        _load(manager, storage, display, load_from)

    try:
        while True:
            try:
                text = (await asyncio.to_thread(display.console.input,
                                                "\n[bold green]You:[/bold green] ")).strip()
            except (EOFError, KeyboardInterrupt):
                break
            if not text:
                continue
            if text.lower() in EXIT_WORDS:
                break
            if text.startswith("/"):
                _slash_command(text, manager, storage, display)
                continue

            try:
                if stream:
                    await display_stream(manager.send_message_stream(text),
                                         on_chunk=display.stream_chunk)
                    display.stream_end()
                else:
                    display.assistant_message(await manager.send_message(text))
            except SessionLimitError as e:
                display.error(str(e))
    finally:
        await wallet_tools.aclose()

    if save_as and config.get("chat.save_history", True) and manager.session.turn_count:
        storage.save(save_as, manager.get_session())
        display.info(f"Saved session '{save_as}'")
    display.session_summary(manager.get_session_summary(), manager.budget)


def _load(manager: ChatSessionManager, storage: SessionStorage, display: Display, name: str):
    session = storage.load(name)
    if session is None:
        display.error(f"No saved session named '{name}'")
        return
    manager.load_session(session)
    display.info(f"Loaded '{name}' ({session.turn_count} turns, ${session.total_cost:.4f})")


def _slash_command(text: str, manager: ChatSessionManager, storage: SessionStorage,
                   display: Display):
    command, _, arg = text.partition(" ")
    arg = arg.strip()

    if command == "/help":
        display.help()
    elif command == "/save":
        if not arg:
            display.error("Usage: /save <name>")
            return
        storage.save(arg, manager.get_session())
        display.info(f"Saved session '{arg}'")
    elif command == "/load":
        if not arg:
            display.error("Usage: /load <name>")
            return
        _load(manager, storage, display, arg)
    elif command == "/list":
        display.sessions(storage.list())
    elif command == "/export":
        if not arg:
            display.error("Usage: /export <name>")
            return
        exported = storage.export(arg, "markdown")
        if exported is None:
            display.error(f"No saved session named '{arg}'")
        else:
            display.console.print(exported, markup=False, soft_wrap=True)
    elif command == "/cost":
        display.session_summary(manager.get_session_summary(), manager.budget)
    elif command == "/clear":
        manager.clear_history()
        display.info("History cleared")
    else:
        display.error(f"Unknown command {command}. Type /help")


# --- Management commands ---

@main.command()
@click.argument("provider", required=False)
def models(provider: str | None):
    """List known models and their pricing."""
    if provider and provider not in PROVIDERS:
        Display().error(f"Unknown provider: {provider}. Choose one of: {', '.join(PROVIDERS)}")
        sys.exit(1)
    Display().models(models_for(provider) if provider else MODEL_REGISTRY, available_providers())


@main.command()
@click.argument("action", type=click.Choice(["list", "delete", "export"]), default="list")
@click.argument("name", required=False)
@click.option("--format", "-f", "fmt", type=click.Choice(["json", "markdown"]),
              default="markdown", help="Export format")
def sessions(action: str, name: str | None, fmt: str):
    """Manage saved chat sessions."""
    display = Display()
    storage = SessionStorage()

    if action == "list":
        display.sessions(storage.list())
        return

    if not name:
        display.error(f"Usage: corvus sessions {action} <name>")
        sys.exit(1)

    if action == "delete":
        if not storage.delete(name):
            display.error(f"No saved session named '{name}'")
            sys.exit(1)
        display.info(f"Deleted '{name}'")
    else:
        exported = storage.export(name, fmt)
        if exported is None:
            display.error(f"No saved session named '{name}'")
            sys.exit(1)
        click.echo(exported)


@main.command("config")
@click.argument("action", type=click.Choice(["get", "set", "delete", "list", "reset", "path"]),
                default="list")
@click.argument("key", required=False)
@click.argument("value", required=False)
def config_command(action: str, key: str | None, value: str | None):
    """Manage Corvus configuration.

    \b
    Examples:
      corvus config set llm.provider openai
      corvus config set chat.max_cost 1.0
      corvus config get chat
    """
    display = Display()
    try:
        config = _config()
        if action == "list":
            click.echo(json.dumps(config.all(), indent=2))
        elif action == "path":
            click.echo(str(config.path))
        elif action == "reset":
            config.reset()
            display.info("Configuration reset to defaults")
        elif not key:
            display.error(f"Usage: corvus config {action} <key>")
            sys.exit(1)
        elif action == "get":
            click.echo(json.dumps(config.get(key), indent=2))
        elif action == "delete":
            config.delete(key)
            display.info(f"Deleted {key}")
        else:
            if value is None:
                display.error("Usage: corvus config set <key> <value>")
                sys.exit(1)
            config.set(key, coerce_value(value))
            display.info(f"{key} = {config.get(key)!r}")
    except ConfigError as e:
        display.error(str(e))
        sys.exit(1)


def _config() -> ConfigManager:
    try:
        return ConfigManager()
    except ConfigError as e:
        Display().error(str(e))
        sys.exit(1)
