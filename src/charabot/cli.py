"""CLI interface for charabot using typer"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
import typer
from prompt_toolkit import prompt as ptk_prompt
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.history import FileHistory
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .ai_provider import create_ai_provider
from .bot import ChatBot, build_chatbot
from .catalog import DEFAULT_PERSONAS
from .config import Config
from .models import BotReply, InboundEvent
from .server import CharabotServer

app = typer.Typer(help="charabot - persona chatbot with human escalation")
console = Console()

SENSITIVE_KEYS = ("api_key", "access_token", "password")


def get_config(config_dir: Optional[Path] = None) -> Config:
    return Config(config_dir)


def get_bot(config: Config, provider: Optional[str], model: Optional[str]) -> ChatBot:
    ai_provider = create_ai_provider(provider=provider, model=model, config=config)
    console.print(f"[dim]Using {provider or config.get('default_provider')} ({type(ai_provider).__name__})[/dim]")
    return build_chatbot(config, provider=ai_provider)


def print_reply(reply: Optional[BotReply], title: str = "Reply"):
    if reply is None:
        console.print("[dim](no reply)[/dim]")
        return
    console.print(Panel(reply.text, title=title, border_style="cyan", expand=True))
    if reply.quick_replies:
        console.print(f"[dim]Quick replies: {' | '.join(reply.quick_replies)}[/dim]")


class AdminClient:
    """Talks to the admin routes of a running charabot server"""

    def __init__(self, config: Config, base_url: Optional[str] = None, timeout: float = 10.0):
        host = config.get("server.host", "localhost")
        port = config.get("server.port", 8000)
        self.base_url = (base_url or f"http://{host}:{port}").rstrip('/')
        self.timeout = timeout

    def _request(self, method: str, endpoint: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.request(method, f"{self.base_url}{endpoint}", json=payload)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPError as e:
            console.print(f"[red]Request to {self.base_url}{endpoint} failed: {e}[/red]")
            raise typer.Exit(1)

    def pending(self) -> Dict[str, Any]:
        return self._request("GET", "/admin/requests")

    def respond(self, user_id: str, admin_id: str, message: str) -> Dict[str, Any]:
        return self._request("POST", "/admin/respond", {"user_id": user_id, "admin_id": admin_id, "message": message})

    def end(self, user_id: str, persona_id: Optional[str] = None) -> Dict[str, Any]:
        return self._request("POST", "/admin/end-session", {"user_id": user_id, "persona_id": persona_id})


def print_result(result: Dict[str, Any]):
    color = "green" if result.get("success") else "red"
    console.print(f"[{color}]{result.get('message')}[/{color}]")


@app.command()
def chat(
    user_id: str = typer.Argument(..., help="User ID"),
    message: str = typer.Argument(..., help="Message to send"),
    config_dir: Optional[Path] = typer.Option(None, "--config-dir", "-c", help="Configuration directory"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="AI model to use"),
    provider: Optional[str] = typer.Option(None, "--provider", help="AI provider (gemini/openai/ollama)")
):
    """Send one message through the bot"""
    config = get_config(config_dir)
    bot = get_bot(config, provider, model)
    reply = asyncio.run(bot.handle_event(InboundEvent(user_id=user_id, text=message)))
    print_reply(reply)


@app.command()
def shell(
    user_id: str = typer.Option("cli_user", "--user", "-u", help="User ID for this session"),
    config_dir: Optional[Path] = typer.Option(None, "--config-dir", "-c", help="Configuration directory"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="AI model to use"),
    provider: Optional[str] = typer.Option(None, "--provider", help="AI provider (gemini/openai/ollama)")
):
    """Interactive conversation with the bot"""
    config = get_config(config_dir)
    bot = get_bot(config, provider, model)

    console.print(Panel(
        "[cyan]Talk to the personas as a messaging user would.[/cyan]\n\n"
        "Bot commands: /characters, /character <name>, /info, /admin, /end, /reset, /help\n"
        "Type 'exit' or 'quit' to leave",
        title="charabot shell",
        border_style="green"
    ))

    commands = ['/characters', '/info', '/admin', '/end', '/reset', '/help', 'exit', 'quit']
    commands.extend(f"/character {persona.name}" for persona in bot.catalog.list_active_personas())
    completer = WordCompleter(commands, sentence=True)
    history = FileHistory(str(config.data_dir / "shell_history.txt"))

    async def send(text: str) -> Optional[BotReply]:
        return await bot.handle_event(InboundEvent(user_id=user_id, text=text))

    loop = asyncio.new_event_loop()
    try:
        while True:
            try:
                user_input = ptk_prompt(
                    f"{user_id}> ",
                    completer=completer,
                    history=history,
                    auto_suggest=AutoSuggestFromHistory()
                ).strip()
            except (KeyboardInterrupt, EOFError):
                break

            if not user_input:
                continue
            if user_input.lower() in ['exit', 'quit']:
                break

            print_reply(loop.run_until_complete(send(user_input)))
    finally:
        loop.close()

    console.print("[cyan]Goodbye![/cyan]")


@app.command()
def personas():
    """List the built-in personas"""
    table = Table(title="Personas")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Active")
    table.add_column("Description")

    for persona in DEFAULT_PERSONAS:
        table.add_row(
            persona.id,
            persona.name,
            "✓" if persona.is_active else "✗",
            persona.description[:80] + ("..." if len(persona.description) > 80 else ""),
        )

    console.print(table)


@app.command()
def pending(
    url: Optional[str] = typer.Option(None, "--url", help="Server base URL"),
    config_dir: Optional[Path] = typer.Option(None, "--config-dir", "-c", help="Configuration directory")
):
    """Show users waiting for a human operator"""
    result = AdminClient(get_config(config_dir), url).pending()
    requests = result.get("requests", [])
    if not requests:
        console.print("[yellow]No pending requests[/yellow]")
        return

    table = Table(title=f"Pending requests ({result.get('count', len(requests))})")
    table.add_column("User", style="cyan")
    table.add_column("Priority")
    table.add_column("Since", style="dim")
    table.add_column("Message")

    colors = {"high": "red", "medium": "yellow", "low": "green"}
    for request in requests:
        priority = request["priority"]
        table.add_row(
            request["user_id"],
            f"[{colors.get(priority, 'white')}]{priority}[/{colors.get(priority, 'white')}]",
            request["timestamp"],
            request["user_message"],
        )

    console.print(table)


@app.command()
def respond(
    user_id: str = typer.Argument(..., help="User to answer"),
    message: str = typer.Argument(..., help="Operator message"),
    admin_id: str = typer.Option("admin", "--admin", "-a", help="Operator ID"),
    url: Optional[str] = typer.Option(None, "--url", help="Server base URL"),
    config_dir: Optional[Path] = typer.Option(None, "--config-dir", "-c", help="Configuration directory")
):
    """Reply to a waiting user as a human operator"""
    print_result(AdminClient(get_config(config_dir), url).respond(user_id, admin_id, message))


@app.command()
def end(
    user_id: str = typer.Argument(..., help="User whose escalation ends"),
    persona_id: Optional[str] = typer.Option(None, "--persona", "-p", help="Persona to return the user to"),
    url: Optional[str] = typer.Option(None, "--url", help="Server base URL"),
    config_dir: Optional[Path] = typer.Option(None, "--config-dir", "-c", help="Configuration directory")
):
    """Hand a user back to the persona"""
    print_result(AdminClient(get_config(config_dir), url).end(user_id, persona_id))


@app.command()
def server(
    host: Optional[str] = typer.Option(None, "--host", "-h", help="Server host"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Server port"),
    config_dir: Optional[Path] = typer.Option(None, "--config-dir", "-c", help="Configuration directory"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="AI model to use"),
    provider: Optional[str] = typer.Option(None, "--provider", help="AI provider (gemini/openai/ollama)")
):
    """Run the webhook and admin API server"""
    import uvicorn

    config = get_config(config_dir)
    host = host or config.get("server.host", "localhost")
    port = int(port or config.get("server.port", 8000))

    logging.basicConfig(
        level=str(config.get("logging.level", "INFO")).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    bot = get_bot(config, provider, model)
    charabot_server = CharabotServer(bot)

    provider_name = provider or config.get("default_provider", "gemini")
    provider_status = "✅ Ready"
    if provider_name in ("gemini", "openai") and not config.get_api_key(provider_name):
        provider_status = "⚠️  No API Key"
    transport_status = "✅ LINE" if bot.transport else "⚠️  No channel access token (replies are not delivered)"

    console.print(Panel(
        f"[bold cyan]🚀 charabot server[/bold cyan]\n\n"
        f"[green]Server Configuration:[/green]\n"
        f"🌐 Address: http://{host}:{port}\n"
        f"📋 API Docs: http://{host}:{port}/docs\n"
        f"💾 Data Directory: {config.data_dir}\n"
        f"🗄️  Memory backend: {config.get('memory.backend', 'memory')}\n\n"
        f"[green]AI Provider:[/green]\n"
        f"🤖 {provider_name} {provider_status}\n\n"
        f"[green]Messaging:[/green]\n"
        f"💬 {transport_status}\n"
        f"🎭 Personas: {len(bot.catalog.list_active_personas())}\n\n"
        f"[dim]Press Ctrl+C to stop server[/dim]",
        title="🔧 Server Startup",
        border_style="green",
        expand=True
    ))

    try:
        uvicorn.run(charabot_server.app, host=host, port=port, log_level="info", access_log=False)
    except KeyboardInterrupt:
        console.print("\n[yellow]🛑 Server stopped[/yellow]")


@app.command()
def config(
    action: str = typer.Argument(..., help="Action: get, set, delete, list"),
    key: Optional[str] = typer.Argument(None, help="Configuration key (dot notation)"),
    value: Optional[str] = typer.Argument(None, help="Value to set"),
    config_dir: Optional[Path] = typer.Option(None, "--config-dir", "-c", help="Configuration directory")
):
    """Manage configuration settings"""
    config_instance = get_config(config_dir)

    if action == "get":
        if not key:
            console.print("[red]Error: key required for get action[/red]")
            return

        val = config_instance.get(key)
        if val is None:
            console.print(f"[yellow]Key '{key}' not found[/yellow]")
        else:
            console.print(f"[cyan]{key}[/cyan] = [green]{val}[/green]")

    elif action == "set":
        if not key or value is None:
            console.print("[red]Error: key and value required for set action[/red]")
            return

        if any(marker in key for marker in SENSITIVE_KEYS):
            console.print(f"[cyan]Setting {key}[/cyan] = [dim]***hidden***[/dim]")
        else:
            console.print(f"[cyan]Setting {key}[/cyan] = [green]{value}[/green]")

        config_instance.set(key, value)
        console.print("[green]✓ Configuration saved[/green]")

    elif action == "delete":
        if not key:
            console.print("[red]Error: key required for delete action[/red]")
            return

        if config_instance.delete(key):
            console.print(f"[green]✓ Deleted {key}[/green]")
        else:
            console.print(f"[yellow]Key '{key}' not found[/yellow]")

    elif action == "list":
        keys = config_instance.list_keys(key or "")

        if not keys:
            console.print("[yellow]No configuration keys found[/yellow]")
            return

        table = Table(title="Configuration Settings")
        table.add_column("Key", style="cyan")
        table.add_column("Value", style="green")

        for k in sorted(keys):
            val = config_instance.get(k)
            if any(marker in k for marker in SENSITIVE_KEYS):
                display_val = "***hidden***" if val else "not set"
            else:
                display_val = str(val) if val is not None else "not set"
            table.add_row(k, display_val)

        console.print(table)

    else:
        console.print(f"[red]Unknown action: {action}[/red]")
        console.print("Valid actions: get, set, delete, list")


if __name__ == "__main__":
    app()
