#!/usr/bin/env python3
"""Interactive chat CLI with approve/deny prompts for gated tools."""

import json
import sys
import uuid
from typing import Any

import httpx
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Confirm, Prompt

APPROVAL_YES = "APPROVAL_YES"
APPROVAL_NO = "APPROVAL_NO"

STREAM_CODES = {"0": "text", "3": "error", "9": "tool_call", "a": "tool_result", "d": "finish_message"}


class ChatCLI:
    """Interactive chat interface for the chat service."""

    def __init__(self, base_url: str = "http://localhost:8000"):
        """Initialize chat CLI."""
        self.base_url = base_url
        self.session_id: str | None = None
        self.messages: list[dict[str, Any]] = []
        self.tools: list[dict[str, Any]] = []
        self.gated_tools: set[str] = set()
        self.console = Console()
        self.client = httpx.Client(timeout=120.0)

    def start(self) -> None:
        """Start the interactive chat session."""
        self.console.print(
            Panel.fit(
                "[bold blue]Toolgate - Interactive Chat[/bold blue]\n"
                "Type your messages to chat with the assistant.\n"
                "Commands: /help, /tools, /clear, /quit",
                border_style="blue",
            )
        )

        if not self._load_tools():
            self.console.print("[red]❌ Cannot connect to the service. Make sure it's running.[/red]")
            return

        self.console.print("[green]✅ Connected to chat service[/green]\n")

        try:
            while True:
                user_input = Prompt.ask("\n[bold cyan]You[/bold cyan]")

                if user_input.lower() in ["/quit", "/exit", "quit", "exit"]:
                    break
                elif user_input.lower() == "/help":
                    self._show_help()
                    continue
                elif user_input.lower() == "/tools":
                    self._show_tools()
                    continue
                elif user_input.lower() == "/clear":
                    self.session_id = None
                    self.messages = []
                    self.console.print("[yellow]🔄 Session cleared[/yellow]")
                    continue
                elif user_input.strip() == "":
                    continue

                self.messages.append({"id": uuid.uuid4().hex, "role": "user", "content": user_input})
                self._run_turn()

        except KeyboardInterrupt:
            pass
        finally:
            self.console.print("\n[yellow]👋 Goodbye![/yellow]")
            self.client.close()

    def _load_tools(self) -> bool:
        try:
            response = self.client.get(f"{self.base_url}/tools")
        except httpx.HTTPError:
            return False
        if response.status_code != 200:
            return False
        self.tools = response.json()
        self.gated_tools = {tool["name"] for tool in self.tools if tool["requires_confirmation"]}
        return True

    def _run_turn(self) -> None:
        """Send the transcript, then keep asking for decisions until none are pending."""
        while True:
            assistant = self._send_transcript()
            if assistant is None:
                return

            pending = [
                part["toolInvocation"]
                for part in assistant["parts"]
                if part["type"] == "tool-invocation" and part["toolInvocation"]["state"] == "call"
            ]
            if not pending:
                return

            for invocation in pending:
                approved = Confirm.ask(
                    f"[bold yellow]Allow[/bold yellow] {invocation['toolName']}"
                    f"({json.dumps(invocation['args'])})?"
                )
                invocation["state"] = "result"
                invocation["result"] = APPROVAL_YES if approved else APPROVAL_NO

    def _send_transcript(self) -> dict[str, Any] | None:
        payload: dict[str, Any] = {"messages": self.messages}
        if self.session_id:
            payload["session_id"] = self.session_id

        assistant: dict[str, Any] = {"id": uuid.uuid4().hex, "role": "assistant", "content": "", "parts": []}
        invocations: dict[str, dict[str, Any]] = {}

        try:
            with self.client.stream("POST", f"{self.base_url}/chat", json=payload) as response:
                if response.status_code != 200:
                    response.read()
                    self.console.print(f"[red]❌ API Error: {response.status_code} - {response.text}[/red]")
                    return None

                self.session_id = response.headers.get("x-session-id", self.session_id)
                for line in response.iter_lines():
                    if line:
                        self._apply_stream_part(line, assistant, invocations)

        except httpx.HTTPError as e:
            self.console.print(f"[red]❌ Connection error: {e}[/red]")
            return None

        # Reconciled outcomes rewrite the previous assistant message in place
        if assistant["parts"]:
            self.messages.append(assistant)
        return assistant

    def _apply_stream_part(
        self, line: str, assistant: dict[str, Any], invocations: dict[str, dict[str, Any]]
    ) -> None:
        code, _, payload = line.partition(":")
        kind = STREAM_CODES.get(code)
        value = json.loads(payload)

        if kind == "text":
            assistant["content"] += value
            assistant["parts"].append({"type": "text", "text": value})
            self._display_text(value)
        elif kind == "tool_call":
            invocation = {"state": "call", **value}
            invocations[value["toolCallId"]] = invocation
            assistant["parts"].append({"type": "tool-invocation", "toolInvocation": invocation})
            gated = " (needs approval)" if value["toolName"] in self.gated_tools else ""
            self.console.print(f"[dim]🔧 {value['toolName']}{gated}[/dim]")
        elif kind == "tool_result":
            invocation = invocations.get(value["toolCallId"]) or self._find_invocation(value["toolCallId"])
            if invocation is not None:
                invocation["state"] = "result"
                invocation["result"] = value["result"]
            self.console.print(f"[dim]✔ result for {value['toolCallId']}[/dim]")
        elif kind == "error":
            self.console.print(f"[red]❌ {value}[/red]")

    def _find_invocation(self, tool_call_id: str) -> dict[str, Any] | None:
        for message in reversed(self.messages):
            for part in message.get("parts") or []:
                if part["type"] == "tool-invocation" and part["toolInvocation"]["toolCallId"] == tool_call_id:
                    return part["toolInvocation"]
        return None

    def _display_text(self, text: str) -> None:
        self.console.print(
            Panel(
                Markdown(text),
                title="[bold green]🤖 Assistant[/bold green]",
                border_style="green",
                padding=(1, 2),
            )
        )

    def _show_tools(self) -> None:
        tool_list = "\n".join(
            f"• {tool['name']}{' [yellow](approval)[/yellow]' if tool['requires_confirmation'] else ''}"
            for tool in self.tools
        )
        self.console.print(Panel(tool_list, title="[yellow]🧰 Tools[/yellow]", border_style="yellow"))

    def _show_help(self) -> None:
        """Show help information."""
        help_text = """
[bold]Available Commands:[/bold]
• /help - Show this help message
• /tools - List the tools the assistant can call
• /clear - Clear session and start over
• /quit or /exit - Exit the chat

[bold]Example Conversation:[/bold]
1. "What's the weather in Lima?"
2. Approve or deny the getWeatherInformation call when asked
3. "Show me Pokémon #25"
        """

        self.console.print(Panel(help_text.strip(), title="[cyan]❓ Help[/cyan]", border_style="cyan"))


def main():
    """Main entry point for the chat CLI."""
    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"

    chat = ChatCLI(base_url)
    chat.start()


if __name__ == "__main__":
    main()
