"""
Command-line client for GenMode.

Keeps the signed-in identity in a durable cache file so each command can
pick up where the last one left off.
"""
from __future__ import annotations
import asyncio
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Tuple

import typer
from rich.console import Console
from rich.table import Table

from ..results import Err
from ..settings import settings
from .api import GenModeClient
from .cache import DurableCache, SESSION_DATA_KEY
from .identity import HttpIdentityProvider, RemoteSession
from .session import IdentityError, SessionReconciler

app = typer.Typer()
console = Console()

EXIT_CODE_OK = 0
EXIT_CODE_FAIL = 1


def build_cache() -> DurableCache:
	return DurableCache(settings.cache_path)


def build_provider(cache: DurableCache) -> HttpIdentityProvider:
	stored = cache.get(SESSION_DATA_KEY)
	session = None
	if isinstance(stored, dict):
		try:
			session = RemoteSession.from_dict(stored)
		except (KeyError, TypeError):
			session = None
	return HttpIdentityProvider(settings.api_url, session=session)


def build_api(provider: HttpIdentityProvider) -> GenModeClient:
	return GenModeClient(settings.api_url, provider)


@asynccontextmanager
async def session_scope() -> AsyncIterator[Tuple[SessionReconciler, GenModeClient]]:
	cache = build_cache()
	provider = build_provider(cache)
	api = build_api(provider)
	try:
		async with SessionReconciler(provider, cache) as reconciler:
			yield reconciler, api
	finally:
		await api.aclose()
		await provider.aclose()


def _require_identity(reconciler: SessionReconciler) -> None:
	if reconciler.identity is None:
		raise IdentityError("Not signed in. Run `genmode login` first.")


def _run_signed_in(coro_fn):
	try:
		return asyncio.run(coro_fn())
	except IdentityError as e:
		console.print(f"[red]{e}[/]")
		sys.exit(EXIT_CODE_FAIL)


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
	"""GenMode CLI."""
	if ctx.invoked_subcommand is None:
		console.print("GenMode - Use --help to see available commands")


@app.command()
def signup(
	email: str = typer.Option(..., "--email", "-e", help="Account email"),
	name: str = typer.Option(..., "--name", "-n", help="Display name"),
	password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True, confirmation_prompt=True),
):
	"""Create an account and sign in."""
	async def run():
		async with session_scope() as (reconciler, _):
			return await reconciler.sign_up(email, password, name)
	try:
		identity = asyncio.run(run())
	except IdentityError as e:
		console.print(f"[red]Sign up failed:[/] {e}")
		sys.exit(EXIT_CODE_FAIL)
	console.print(f"[green]✓[/] Welcome, {identity.display_name}!")


@app.command()
def login(
	email: str = typer.Option(..., "--email", "-e", help="Account email"),
	password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True),
):
	"""Sign in with email and password."""
	async def run():
		async with session_scope() as (reconciler, _):
			return await reconciler.sign_in(email, password)
	try:
		identity = asyncio.run(run())
	except IdentityError as e:
		console.print(f"[red]Sign in failed:[/] {e}")
		sys.exit(EXIT_CODE_FAIL)
	console.print(f"[green]✓[/] Signed in as {identity.display_name}")


@app.command()
def logout():
	"""Sign out and clear the local session cache."""
	async def run():
		async with session_scope() as (reconciler, _):
			await reconciler.sign_out()
	try:
		asyncio.run(run())
	except IdentityError as e:
		console.print(f"[red]Sign out failed:[/] {e}")
		sys.exit(EXIT_CODE_FAIL)
	console.print("[green]✓[/] Signed out")


@app.command()
def whoami():
	"""Show the signed-in user."""
	async def run():
		async with session_scope() as (reconciler, _):
			return reconciler.identity
	identity = asyncio.run(run())
	if identity is None:
		console.print("Not signed in")
		sys.exit(EXIT_CODE_FAIL)
	console.print(f"{identity.display_name} <{identity.email}>")


@app.command()
def personas():
	"""List the available personas."""
	async def run():
		async with session_scope() as (_, api):
			return await api.personas()
	rows = asyncio.run(run())
	table = Table(title="Personas")
	table.add_column("ID")
	table.add_column("Name")
	table.add_column("Vibe")
	for p in rows:
		table.add_row(p["id"], f"{p['emoji']} {p['name']}", p["description"])
	console.print(table)


@app.command()
def translate(
	text: str = typer.Argument(..., help="Text to translate"),
	persona: Optional[str] = typer.Option(None, "--persona", "-p", help="Persona id; omit for a direct translation"),
):
	"""Translate text into a persona's style."""
	async def run():
		async with session_scope() as (reconciler, api):
			_require_identity(reconciler)
			return await api.translate(text, persona=persona, mode="full" if persona else "direct")
	result = _run_signed_in(run)
	if isinstance(result, Err):
		console.print(f"[red]Translation Failed:[/] {result.message}")
		sys.exit(EXIT_CODE_FAIL)
	console.print(result.value["text"])
	if result.value.get("warning"):
		console.print(f"[yellow]Warning:[/] {result.value['warning']}")


@app.command()
def history(limit: int = typer.Option(10, "--limit", "-l", min=1, help="Number of entries to show")):
	"""Show recent translations."""
	async def run():
		async with session_scope() as (reconciler, api):
			_require_identity(reconciler)
			return await api.history()
	rows = _run_signed_in(run)
	if not rows:
		console.print("[dim]No translations yet.[/]")
		return
	table = Table(title="Recent translations")
	table.add_column("When")
	table.add_column("Persona")
	table.add_column("Input")
	table.add_column("Output")
	for row in rows[:limit]:
		table.add_row(str(row["created_at"]), row["persona"], row["input_text"], row["output_text"])
	console.print(table)


@app.command()
def stats(tz: Optional[str] = typer.Option(None, "--tz", help="IANA time zone for day boundaries")):
	"""Show usage statistics."""
	async def run():
		async with session_scope() as (reconciler, api):
			_require_identity(reconciler)
			return await api.stats(tz)
	result = _run_signed_in(run)
	console.print(f"Total translations: {result.total_count}")
	console.print(f"This week: {result.weekly_count}")
	console.print(f"Personas used: {result.unique_persona_count}")
	console.print(f"Streak: {result.streak_days} day(s)")


if __name__ == "__main__":
	app()
