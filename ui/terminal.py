"""FootballBook terminal client - login/register/logout against a running server"""

import os
import sys
import time
from pathlib import Path
from typing import Callable, Optional

from rich import box
from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table
from rich.text import Text

from footballbook.auth.namespaces import ADMIN, USER, Namespace
from footballbook.client.api import AuthClient
from footballbook.client.errors import ErrorBridge
from footballbook.client.events import EventBus
from footballbook.client.forms import AuthForm
from footballbook.client.navigation import HistoryNavigator
from footballbook.client.notifications import Notification, Notifier
from footballbook.client.session import SessionManager
from footballbook.client.storage import JsonFileStorage
from footballbook.core.config import Settings, load_settings

console = Console()

DEFAULT_SESSION_FILE = Path.home() / ".footballbook" / "session.json"

_STYLES = {"success": "green", "error": "red", "warning": "yellow", "info": "cyan"}


class _BlockingScheduler:
    """Nothing else runs between prompts, so the redirect delay is a plain pause."""

    def call_later(self, delay: float, fn: Callable[[], None]) -> None:
        if delay > 0:
            time.sleep(delay)
        fn()


def _print_notification(note: Notification) -> None:
    style = _STYLES.get(note.type, "white")
    body = f"[bold {style}]{note.title}[/bold {style}]"
    if note.message:
        body += f"\n{note.message}"
    console.print(Panel(body, border_style=style, box=box.ROUNDED))


class TerminalClient:
    """Menu-driven client for one namespace at a time"""

    def __init__(self, base_url: str, session_file: Path, settings: Optional[Settings] = None):
        self.base_url = base_url
        self.settings = settings or load_settings()
        self.storage = JsonFileStorage(session_file)
        self.bus = EventBus()
        self.navigator = HistoryNavigator()
        self.notifier = Notifier()
        self.notifier.on_notify(_print_notification)
        self.running = True
        self.use_namespace(USER)

    def use_namespace(self, namespace: Namespace) -> None:
        self.namespace = namespace
        self.session = SessionManager(namespace, self.storage, self.bus, self.navigator)
        self.client = AuthClient(
            namespace, base_url=self.base_url, timeout=self.settings.auth.api_timeout_seconds
        )
        self.bridge = ErrorBridge(
            self.notifier,
            self.session,
            self.navigator,
            scheduler=_BlockingScheduler(),
            redirect_delay=self.settings.auth.logout_redirect_delay_seconds,
        )
        self.form = AuthForm(self.client, self.session, self.bridge)

    def show_dashboard(self) -> None:
        console.clear()
        header = Panel(
            Align.center(Text("FootballBook", style="bold white")),
            style="bold blue",
            box=box.DOUBLE,
        )

        status_table = Table(title="Session", box=box.ROUNDED, show_header=True)
        status_table.add_column("Field", style="cyan", width=20)
        status_table.add_column("Value", style="green", width=40)
        status_table.add_row("Server", self.base_url)
        status_table.add_row("Namespace", self.namespace.name)

        user = self.session.get_user() if self.session.is_authenticated() else None
        if user:
            status_table.add_row("Status", "[green]Signed in[/green]")
            status_table.add_row("Name", str(user.get("name", "")))
            status_table.add_row(self.namespace.identifier_label, str(user.get(self.namespace.identifier_field, "")))
            claims = self.session.get_claims()
            if claims is not None:
                status_table.add_row("Expires (epoch)", str(claims.exp))
        else:
            status_table.add_row("Status", "[red]Signed out[/red]")
        status_table.add_row("Location", self.navigator.current_url)

        console.print(header)
        console.print()
        console.print(status_table)
        console.print()

    def show_menu(self) -> None:
        other = ADMIN if self.namespace is USER else USER
        menu_text = f"""
[bold cyan]Main Menu:[/bold cyan]

[1] Login
[2] Register
[3] Who am I - fetch the account from the server
[4] Logout
[5] Switch to {other.name} namespace
[Q] Quit

"""
        console.print(Panel(menu_text, title="Menu", border_style="cyan"))
        choice = Prompt.ask("Select option", choices=["1", "2", "3", "4", "5", "q", "Q"], default="1")

        if choice == "1":
            self.login()
        elif choice == "2":
            self.register()
        elif choice == "3":
            self.whoami()
        elif choice == "4":
            self.session.logout()
            self.notifier.info("Logged out")
        elif choice == "5":
            self.use_namespace(other)
        elif choice.lower() == "q":
            console.print("[yellow]Goodbye![/yellow]")
            self.running = False
            return
        Prompt.ask("\nPress Enter to continue", default="", show_default=False)

    def _show_field_errors(self) -> None:
        for name, message in self.form.errors.fields.items():
            console.print(f"[red]{name}: {message}[/red]")

    def login(self) -> None:
        identifier = Prompt.ask(self.namespace.identifier_label)
        password = Prompt.ask("Password", password=True)
        if self.form.login(identifier, password):
            self.notifier.success("Signed in")
            self.navigator.navigate(self.namespace.landing_path)
        else:
            self._show_field_errors()

    def register(self) -> None:
        identifier = Prompt.ask(self.namespace.identifier_label)
        name: Optional[str] = Prompt.ask("Name", default="") or None
        password = Prompt.ask("Password", password=True)
        if self.form.register(identifier, password, name=name):
            self.notifier.success("Account created")
            self.navigator.navigate(self.namespace.landing_path)
        else:
            self._show_field_errors()

    def whoami(self) -> None:
        ok, body, _ = self.bridge.with_error_handling(lambda: self.client.me(self.session))
        if not ok:
            return
        table = Table(box=box.SIMPLE, show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value", style="white")
        for key, value in (body.get("user") or {}).items():
            table.add_row(key, str(value))
        console.print(table)


def main():
    """Main entry point for the terminal client"""
    base_url = os.getenv("FOOTBALLBOOK_API_URL", "http://127.0.0.1:8000")
    session_file = Path(os.getenv("FOOTBALLBOOK_SESSION_FILE") or DEFAULT_SESSION_FILE)
    client = TerminalClient(base_url, session_file)

    try:
        while client.running:
            client.show_dashboard()
            client.show_menu()
    except KeyboardInterrupt:
        console.print("\n[yellow]Exiting...[/yellow]")
    except Exception as e:
        console.print(f"\n[bold red]Error: {e}[/bold red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
