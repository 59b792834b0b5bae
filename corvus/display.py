"""Rich terminal display for chat sessions and direct tool output."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from corvus.models import ModelInfo

if TYPE_CHECKING:
    from corvus.budget import BudgetTracker

console = Console()

CHAT_HELP = """\
[bold]Commands[/bold]
  /help            Show this help
  /save <name>     Save the conversation
  /load <name>     Load a saved conversation
  /list            List saved conversations
  /export <name>   Export a saved conversation as Markdown
  /cost            Show turns and spend so far
  /clear           Start over with an empty history
  exit, quit       Leave the chat"""


class Display:
    """Handles all terminal output with rich formatting."""

    def __init__(self, colors: bool = True):
        self.console = console if colors else Console(no_color=True, highlight=False)

    def banner(self, provider: str, model: str, max_turns: int, max_cost: float):
        table = Table(show_header=False, box=None, padding=(0, 1))
        table.add_column(style="bold cyan")
        table.add_column()
        table.add_row("Provider:", provider)
        table.add_row("Model:", model)
        table.add_row("Limits:", f"{max_turns} turns, ${max_cost:.2f}")
        self.console.print(Panel(table, title="[bold]Corvus[/bold]", border_style="cyan"))
        self.console.print("  [dim]Type /help for commands, exit to quit.[/dim]")

    def privacy_warning(self, provider: str):
        self.console.print(
            f"  [yellow]Wallet addresses and balances you discuss are sent to {provider}.[/yellow]"
        )

    def no_providers(self, error: str):
        self.console.print(
            Panel(
                f"[bold red]{escape(error)}[/bold red]\n\n"
                "Set at least one API key:\n"
                "  ANTHROPIC_API_KEY\n"
                "  OPENAI_API_KEY\n"
                "  GOOGLE_API_KEY / GEMINI_API_KEY\n"
                "  GROQ_API_KEY\n"
                "or run a local Ollama server.",
                title="Error",
                border_style="red",
            )
        )

    def help(self):
        self.console.print(CHAT_HELP)

    def assistant_message(self, content: str):
        if content.strip():
            self.console.print(Panel(Markdown(content), title="Corvus", border_style="blue"))

    def stream_chunk(self, chunk: str):
        self.console.print(chunk, end="", markup=False, highlight=False)

    def stream_end(self):
        self.console.print()

    def tool_call(self, name: str, args: dict):
        args_str = ", ".join(f"{k}={_truncate(str(v), 60)}" for k, v in args.items())
        self.console.print(f"  [dim]-> {name}({escape(args_str)})[/dim]")

    def error(self, msg: str):
        self.console.print(f"  [bold red]Error:[/bold red] {escape(msg)}")

    def info(self, msg: str):
        self.console.print(f"  [green]{escape(msg)}[/green]")

    def session_summary(self, summary: dict, budget: BudgetTracker):
        table = Table(title="Session", border_style="cyan")
        table.add_column("Metric", style="bold")
        table.add_column("Value", justify="right")
        table.add_row("Provider", f"{summary['provider']} / {summary['model']}")
        table.add_row("Turns", str(summary["turns"]))
        table.add_row("Messages", str(summary["messages"]))
        table.add_row("Duration", f"{summary['duration']}s")
        costs = budget.summary()
        table.add_row("Spent", f"${costs['spent']:.6f}")
        table.add_row("Limit", f"${costs['total_budget']:.2f}  {_budget_bar(budget)}")
        table.add_row("LLM Calls", str(costs["total_calls"]))
        if costs["total_calls"]:
            table.add_row("Avg Cost/Call", f"${costs['avg_cost_per_call']:.6f}")
        self.console.print(table)

    def sessions(self, sessions: list[dict]):
        if not sessions:
            self.console.print("  [dim]No saved sessions.[/dim]")
            return
        table = Table(title="Saved Sessions", border_style="cyan")
        table.add_column("Name", style="bold")
        table.add_column("Saved")
        table.add_column("Turns", justify="right")
        for s in sessions:
            table.add_row(s["name"], s["saved_at"][:19].replace("T", " "), str(s["turns"]))
        self.console.print(table)

    def models(self, models: list[ModelInfo], available: list[str]):
        table = Table(title="Available Models", border_style="cyan")
        table.add_column("Model ID", style="bold")
        table.add_column("Provider")
        table.add_column("Description")
        table.add_column("Input $/1M", justify="right")
        table.add_column("Output $/1M", justify="right")
        table.add_column("Context", justify="right")

        for m in models:
            table.add_row(
                m.id, m.provider, m.description,
                f"${m.input_cost_per_1m:.3f}" if m.priced else "-",
                f"${m.output_cost_per_1m:.2f}" if m.priced else "-",
                f"{m.context_window:,}",
            )
        self.console.print(table)
        self.console.print(f"\n  [green]Active providers:[/green] {', '.join(available)}")

    def tool_result(self, title: str, result: str, as_json: bool = False):
        """Print a tool's JSON result, raw for ``--json`` and highlighted otherwise."""
        if as_json:
            self.console.print(result, markup=False, highlight=False, soft_wrap=True)
            return

        try:
            data = json.loads(result)
        except json.JSONDecodeError:
            self.console.print(result, markup=False)
            return

        if isinstance(data, dict) and "error" in data:
            self.error(str(data["error"]))
            return
        body = Syntax(json.dumps(data, indent=2, ensure_ascii=False), "json", word_wrap=True)
        self.console.print(Panel(body, title=title, border_style="blue"))


def _budget_bar(budget: BudgetTracker) -> str:
    pct = max(1.0 - budget.utilization, 0.0)
    filled = int(pct * 20)
    empty = 20 - filled
    color = "green" if pct > 0.5 else "yellow" if pct > 0.2 else "red"
    return f"[{color}]{'█' * filled}{'░' * empty}[/{color}]"


def _truncate(s: str, max_len: int) -> str:
    s = s.replace("\n", "\\n")
    if len(s) > max_len:
        return s[:max_len] + "..."
    return s
