"""npm-ssl-updater CLI — force SSL, HTTP/2 and HSTS on Nginx Proxy Manager hosts."""

import sys

import click
from dotenv import find_dotenv, load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from npm_ssl_updater import __version__

console = Console()


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__)
@click.option("--host", "-H", default=None, help="Nginx Proxy Manager address (e.g. http://localhost:81)")
@click.option("--email", "-e", default=None, help="Admin email")
@click.option("--password", "-p", default=None, help="Admin password")
@click.option("--hsts-subdomains", "--hsd", is_flag=True, help="Enable HSTS for subdomains too")
@click.option("--cache-assets", "--ca", is_flag=True, help="Enable static asset caching")
@click.option("--block-exploits", "--bce", is_flag=True, help="Block common exploits")
@click.option("--enable-websockets", "--ws", is_flag=True, help="Enable websocket upgrades")
@click.option("--exempt", multiple=True, help="Domain substring exempt from --block-exploits (repeatable)")
@click.option("--policy-file", type=click.Path(dir_okay=False), default=None, help="YAML file with options and exemptions")
@click.option("--dry-run", is_flag=True, help="Show what would change without applying anything")
@click.option("--print-advanced", is_flag=True, help="Print the advanced_config section of every host")
@click.option("--list", "list_only", is_flag=True, help="List proxy hosts and their current flags")
@click.option("--timeout", default=30.0, show_default=True, help="HTTP timeout in seconds")
def main(
    host: str | None,
    email: str | None,
    password: str | None,
    hsts_subdomains: bool,
    cache_assets: bool,
    block_exploits: bool,
    enable_websockets: bool,
    exempt: tuple,
    policy_file: str | None,
    dry_run: bool,
    print_advanced: bool,
    list_only: bool,
    timeout: float,
):
    """Enable Force SSL, HTTP/2, HSTS and other options on every proxy host.

    Credentials can also be given through NPM_HOST, NPM_EMAIL and
    NPM_PASSWORD, or a .env file in the current directory.
    """
    from npm_ssl_updater.config import (
        Settings,
        build_options,
        load_policy_file,
        require_credentials,
        resolve_credentials,
        select_mode,
    )
    from npm_ssl_updater.errors import ConfigError, UpdaterError

    load_dotenv(find_dotenv(usecwd=True))

    try:
        mode = select_mode(dry_run=dry_run, print_advanced=print_advanced, list_only=list_only)
    except ConfigError as e:
        raise click.UsageError(str(e))

    creds = resolve_credentials(host, email, password)
    for warning in creds.warnings:
        console.print(f"[yellow]![/] {warning}")

    try:
        require_credentials(creds)
    except ConfigError as e:
        console.print(f"[red]x Error:[/] {escape(str(e))}\n")
        click.echo(click.get_current_context().get_help())
        sys.exit(1)

    try:
        base = load_policy_file(policy_file) if policy_file else None
        options = build_options(
            base,
            hsts_subdomains=hsts_subdomains,
            cache_assets=cache_assets,
            block_exploits=block_exploits,
            enable_websockets=enable_websockets,
            exemptions=exempt,
        )
        settings = Settings(credentials=creds, options=options, mode=mode, timeout=timeout)
        _run(settings)
    except UpdaterError as e:
        console.print(f"[red]x Error:[/] {escape(str(e))}")
        sys.exit(1)


def _run(settings) -> None:
    from npm_ssl_updater.api.client import ProxyManagerClient
    from npm_ssl_updater.prompt import RichResponder
    from npm_ssl_updater.reconcile.driver import ReconciliationDriver, RunMode, RunSummary

    creds = settings.credentials
    console.print(f"\n[bold blue]npm-ssl-updater[/] — {creds.host} ({settings.mode.value})\n")

    with ProxyManagerClient(creds.host, timeout=settings.timeout) as client:
        client.authenticate(creds.email, creds.password)
        hosts = client.list_proxy_hosts()

        if not hosts:
            console.print("[yellow]No proxy hosts found, nothing to reconcile.[/]")
            return

        responder = RichResponder(console)
        driver = ReconciliationDriver(
            settings.options,
            settings.mode,
            responder=responder,
            on_invalid=responder.invalid,
            updater=client.update_proxy_host,
            on_pending=_print_pending,
        )

        outcomes = []
        for outcome in driver.run(hosts):
            outcomes.append(outcome)
            _print_outcome(outcome)

    if settings.mode is RunMode.LIST_ONLY:
        _print_host_table(outcomes)
        return
    if settings.mode is RunMode.VIEW_ADVANCED_CONFIG:
        return

    _print_summary(RunSummary.from_outcomes(outcomes))
    console.print("\n[green]Done.[/]")


# ── Output ───────────────────────────────────────────────────────────


def _print_pending(outcome) -> None:
    console.print(f"\n[bold]Proxy:[/] [cyan]{outcome.host.label}[/]")
    for line in outcome.diff:
        text = line.format()
        if line.changed:
            console.print(f"  [yellow]{text}[/]", highlight=False)
        else:
            console.print(f"  [dim]{text}[/]", highlight=False)


def _print_outcome(outcome) -> None:
    from npm_ssl_updater.reconcile.driver import OutcomeStatus

    status = outcome.status
    if status is OutcomeStatus.VIEWED:
        console.print(
            Panel(
                Text(outcome.host.advanced_config or "<empty>"),
                title=f"Advanced config: {outcome.host.label}",
                title_align="left",
            )
        )
    elif status is OutcomeStatus.COMPLIANT:
        console.print(f"[green]v[/] {outcome.host.label} is already configured correctly.")
    elif status is OutcomeStatus.WOULD_APPLY:
        console.print("   -> dry run: no changes applied.")
    elif status is OutcomeStatus.SKIPPED:
        console.print("   -> [red]x[/] skipped.")
    elif status is OutcomeStatus.APPLIED:
        console.print("   -> [green]v[/] changes applied.")
    elif status is OutcomeStatus.FAILED:
        console.print(f"   -> [yellow]! Update failed:[/] {escape(outcome.error)}")


def _print_host_table(outcomes) -> None:
    from npm_ssl_updater.models.host import POLICY_FIELDS

    table = Table(title=f"Proxy hosts ({len(outcomes)})")
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Domains", style="cyan")
    table.add_column("Forward")
    for name in POLICY_FIELDS:
        table.add_column(name.replace("_", " "), justify="center")

    for outcome in outcomes:
        host = outcome.host
        flags = host.flags.as_dict()
        table.add_row(
            str(host.id),
            host.label,
            str(host.forward),
            *("[green]Y[/]" if flags[name] else "[red]N[/]" for name in POLICY_FIELDS),
        )

    console.print(table)


def _print_summary(summary) -> None:
    from npm_ssl_updater.reconcile.driver import OutcomeStatus

    table = Table(title=f"Summary ({summary.total} hosts)")
    table.add_column("Result")
    table.add_column("Hosts", justify="right")
    for status in (
        OutcomeStatus.COMPLIANT,
        OutcomeStatus.WOULD_APPLY,
        OutcomeStatus.APPLIED,
        OutcomeStatus.SKIPPED,
        OutcomeStatus.FAILED,
    ):
        count = summary.count(status)
        if count:
            table.add_row(status.value.replace("_", " "), str(count))

    console.print()
    console.print(table)


if __name__ == "__main__":
    main()
