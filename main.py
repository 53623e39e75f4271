import logging
import subprocess
import sys
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from config import settings

APP_NAME = "Book Admin CLI"

app = typer.Typer(name="book-admin", help="Book admin backend launcher", no_args_is_help=True)
console = Console()


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command("serve")
def serve(
    host: str = typer.Option(settings.api_host, "--host", help="Interface to bind"),
    port: int = typer.Option(settings.api_port, "--port", "-p", help="Port to listen on"),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes"),
    log_level: str = typer.Option(settings.log_level, "--log-level", help="Log level"),
) -> None:
    """HTTP sunucusunu başlat."""
    configure_logging(log_level)
    console.print(f"[bold green]Starting {settings.app_name} on http://{host}:{port}[/]")
    cmd = [
        sys.executable, "-m", "uvicorn", "api:app",
        "--host", host,
        "--port", str(port),
        "--log-level", log_level.lower(),
    ]
    if reload:
        cmd.append("--reload")
    try:
        subprocess.run(cmd, check=True)
    except subprocess.CalledProcessError as e:
        console.print(f"[bold red]Server exited with code {e.returncode}[/]")
        raise typer.Exit(e.returncode)
    except KeyboardInterrupt:
        console.print("[dim]Server stopped[/]")


@app.command("show-config")
def show_config() -> None:
    """Geçerli ayarları yazdır (yönetici parolası maskelenir)."""
    table = Table(title=APP_NAME, show_header=True, header_style="bold")
    table.add_column("Setting", style="green")
    table.add_column("Value")
    for key, value in vars(settings).items():
        if key == "admin_password":
            value = "********"
        table.add_row(key, str(value))
    console.print(table)


if __name__ == "__main__":
    app()
