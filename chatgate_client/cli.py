"""Terminal chat front end for the chat gateway.

Entry point registered in pyproject.toml:
    chatgate-chat = "chatgate_client.cli:app"

Usage:
    chatgate-chat --api-url http://localhost:8000 --token <jwt>

    # Or set the connection details in the environment:
    export CHATGATE_API_URL=http://localhost:8000
    export CHATGATE_TOKEN=<jwt>
    chatgate-chat

Type a message and press Enter. The reply streams in as it is generated; the
prompt does not come back until the turn has finished. Ctrl-D or /quit exits.
"""

import asyncio

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel

from chatgate_client.client import DEFAULT_API_URL, AsyncChatClient
from chatgate_client.session import ChatSession
from chatgate_client.types import ChatTurn

console = Console()

EXIT_COMMANDS = {"/quit", "/exit"}

app = typer.Typer(
    name="chatgate-chat",
    help="Chat with a model through the chat gateway",
    add_completion=False,
)


class ConsoleRenderer:
    """Writes deltas straight to the terminal and re-renders the finished reply."""

    def __init__(self, output: Console, markdown: bool = True):
        self.output = output
        self.markdown = markdown

    def on_delta(self, text: str) -> None:
        self.output.print(text, end="", markup=False, highlight=False, soft_wrap=True)

    def on_error(self, message: str) -> None:
        self.output.print()
        self.output.print(Panel(message, title="Error", border_style="red"))

    def on_complete(self, turn: ChatTurn) -> None:
        self.output.print()
        if self.markdown and turn.text:
            self.output.print(Panel(Markdown(turn.text), border_style="dim"))


async def _run(api_url: str, token: str, markdown: bool) -> None:
    async with AsyncChatClient(api_url=api_url, token=token) as client:
        session = ChatSession(client.stream_chat, ConsoleRenderer(console, markdown=markdown))

        while True:
            try:
                text = await asyncio.to_thread(console.input, "[bold cyan]you>[/bold cyan] ")
            except (EOFError, KeyboardInterrupt):
                console.print()
                return

            text = text.strip()
            if not text:
                continue
            if text in EXIT_COMMANDS:
                return

            console.print("[bold green]assistant>[/bold green] ", end="")
            await session.send(text)


@app.command()
def chat(
    api_url: str = typer.Option(
        DEFAULT_API_URL,
        "--api-url",
        envvar="CHATGATE_API_URL",
        help="Base URL of the chat gateway",
    ),
    token: str = typer.Option(
        ...,
        "--token",
        envvar="CHATGATE_TOKEN",
        help="Bearer token issued by the auth service",
    ),
    markdown: bool = typer.Option(
        True,
        "--markdown/--plain",
        help="Re-render each finished reply as Markdown",
    ),
) -> None:
    """Start an interactive chat session."""
    console.print(f"[dim]Connected to {api_url}. Type /quit to exit.[/dim]")
    asyncio.run(_run(api_url, token, markdown))


if __name__ == "__main__":
    app()
