"""Main CLI entry point for the repository migration orchestrator."""

import sys
from typing import Any, Dict, Optional, Tuple
from pathlib import Path

import click
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..api.tools import ToolExecutionResult
from ..auth.authorization import ToolTier, required_tier
from ..config.config import Config
from ..identity.cli_probe import check_cli_available
from ..utils.logging import setup_logging
from ..migration.engine import MigrationEngine

console = Console()


@click.group()
@click.version_option(version='0.1.0', prog_name='repo-migrate')
@click.option(
    '--config',
    '-c',
    type=click.Path(exists=True),
    help='Path to configuration file',
)
@click.option(
    '--state',
    '-s',
    type=click.Path(),
    help='Path to the migration state file (overrides configuration)',
)
@click.option(
    '--verbose',
    '-v',
    is_flag=True,
    help='Enable verbose logging',
)
@click.pass_context
def cli(
    ctx: click.Context, config: Optional[str], state: Optional[str], verbose: bool
) -> None:
    """Repository Migration Orchestrator - Plan, batch and track repository migrations."""
    ctx.ensure_object(dict)

    if config:
        ctx.obj['config_path'] = config
    if state:
        ctx.obj['state_path'] = state
    ctx.obj['verbose'] = verbose

    log_level = 'DEBUG' if verbose else 'INFO'
    setup_logging(log_level)


@cli.command()
@click.option(
    '--output',
    '-o',
    default='config.yaml',
    help='Output configuration file path',
)
@click.pass_context
def init(ctx: click.Context, output: str) -> None:
    """Initialize a new configuration file."""
    console.print(
        Panel.fit(
            '[bold green]Repository Migration Orchestrator[/bold green]\n'
            'Initializing configuration...',
            border_style='green',
        )
    )

    try:
        Config.create_template(output)

        console.print(f'[green]✓[/green] Configuration template created at: {output}')
        console.print(
            f'[yellow]Please edit {output} with your identity provider and operator details[/yellow]'
        )

    except Exception as e:
        console.print(f'[red]✗[/red] Failed to create configuration: {e}')
        sys.exit(1)


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show configuration, batches and migration CLI availability."""
    console.print(
        Panel.fit(
            '[bold magenta]Repository Migration Orchestrator[/bold magenta]\nStatus',
            border_style='magenta',
        )
    )

    try:
        config = _load_config(ctx)
        _setup_logging_with_config(ctx, config)

        table = Table(title='Configuration')
        table.add_column('Setting', style='cyan')
        table.add_column('Value', style='green')

        table.add_row('Identity Provider', config.identity_provider.url)
        table.add_row('State File', config.storage.state_file)
        table.add_row('Operator', f'{config.operator.user_login} ({config.operator.tier})')
        table.add_row('Default Wave Size', str(config.planning.default_wave_size))
        table.add_row('Max Workers', str(config.orchestrator.max_workers))

        installed, version, error = check_cli_available(config.identity_provider.cli_path)
        table.add_row('Migration CLI', version if installed else f'✗ {error}')
        console.print(table)

        engine = _create_engine(config)
        result = engine.execute(
            'list_batches', {}, config.operator.to_auth_context()
        )
        if result.success:
            _display_batches(result.result['batches'])

    except Exception as e:
        console.print(f'[red]✗[/red] Failed to load status: {e}')
        if ctx.obj.get('verbose'):
            console.print_exception()
        sys.exit(1)


@cli.command()
@click.option('--max-count', '-n', type=int, help='Maximum number of candidates')
@click.option('--organization', '-o', help='Restrict to one organization')
@click.pass_context
def pilots(ctx: click.Context, max_count: Optional[int], organization: Optional[str]) -> None:
    """Find low-risk repositories for a pilot migration."""
    result = _run_tool(
        ctx,
        'find_pilot_candidates',
        {'max_count': max_count, 'organization': organization},
    )

    table = Table(title='Pilot Candidates')
    table.add_column('Repository', style='cyan')
    table.add_column('Complexity', style='green')
    table.add_column('Score', style='blue')
    table.add_column('Size (KB)', style='yellow')
    for candidate in result.result['candidates']:
        table.add_row(
            candidate['full_name'],
            f"{candidate['complexity_score']} ({candidate['complexity_rating']})",
            str(candidate['pilot_score']),
            str(candidate['size_kb']),
        )
    console.print(table)
    _display_next_steps(result)


@cli.command('plan-waves')
@click.option('--wave-size', '-w', type=int, help='Repositories per wave')
@click.option('--organization', '-o', help='Restrict to one organization')
@click.pass_context
def plan_waves(ctx: click.Context, wave_size: Optional[int], organization: Optional[str]) -> None:
    """Plan dependency-ordered migration waves."""
    result = _run_tool(
        ctx, 'plan_waves', {'wave_size': wave_size, 'organization': organization}
    )

    table = Table(title='Migration Waves')
    table.add_column('Wave', style='cyan')
    table.add_column('Count', style='blue')
    table.add_column('Repositories', style='green')
    for wave in result.result['waves']:
        table.add_row(
            str(wave['wave_number']), str(wave['count']), ', '.join(wave['repositories'])
        )
    console.print(table)
    _display_next_steps(result)


@cli.command('create-batch')
@click.argument('repositories', nargs=-1, required=True)
@click.option('--name', '-n', help='Batch name (generated when omitted)')
@click.option('--description', '-d', help='Batch description')
@click.option('--destination-org', help='Destination organization')
@click.option(
    '--type',
    'batch_type',
    type=click.Choice(['custom', 'pilot']),
    default='custom',
    help='Batch type',
)
@click.pass_context
def create_batch(
    ctx: click.Context,
    repositories: Tuple[str, ...],
    name: Optional[str],
    description: Optional[str],
    destination_org: Optional[str],
    batch_type: str,
) -> None:
    """Create a batch from REPOSITORIES (org/name)."""
    result = _run_tool(
        ctx,
        'create_batch',
        {
            'name': name,
            'repositories': list(repositories),
            'description': description,
            'destination_org': destination_org,
            'batch_type': batch_type,
        },
        persist=True,
    )
    _display_result(result)


@cli.command('configure-batch')
@click.argument('batch_name')
@click.option('--destination-org', help='Destination organization')
@click.option('--migration-api', help='Migration API (GEI or ELM)')
@click.pass_context
def configure_batch(
    ctx: click.Context,
    batch_name: str,
    destination_org: Optional[str],
    migration_api: Optional[str],
) -> None:
    """Set destination organization or migration API of BATCH_NAME."""
    result = _run_tool(
        ctx,
        'configure_batch',
        {
            'batch_name': batch_name,
            'destination_org': destination_org,
            'migration_api': migration_api,
        },
        persist=True,
    )
    _display_result(result)


@cli.command('schedule-batch')
@click.argument('batch_name')
@click.option('--at', 'scheduled_at', help='Schedule time (ISO 8601 or YYYY-MM-DD)')
@click.option('--destination-org', help='Destination organization')
@click.pass_context
def schedule_batch(
    ctx: click.Context,
    batch_name: str,
    scheduled_at: Optional[str],
    destination_org: Optional[str],
) -> None:
    """Schedule BATCH_NAME for migration."""
    result = _run_tool(
        ctx,
        'schedule_batch',
        {
            'batch_name': batch_name,
            'scheduled_at': scheduled_at,
            'destination_org': destination_org,
        },
        persist=True,
    )
    _display_result(result)


@cli.command()
@click.option('--batch', 'batch_name', help='Batch name')
@click.option('--repository', '-r', help='Single repository (org/name)')
@click.option(
    '--production',
    is_flag=True,
    help='Queue a production migration instead of a dry run',
)
@click.pass_context
def start(
    ctx: click.Context,
    batch_name: Optional[str],
    repository: Optional[str],
    production: bool,
) -> None:
    """Queue a batch or a repository for migration."""
    if production:
        console.print('[yellow]Queueing production migration[/yellow]')
    else:
        console.print('[yellow]Running in dry-run mode - use --production to migrate[/yellow]')

    result = _run_tool(
        ctx,
        'start_migration',
        {'batch_name': batch_name, 'repository': repository, 'dry_run': not production},
        persist=True,
    )
    _display_result(result)

    for name in result.result.get('skipped_repositories', []):
        console.print(f'  [yellow]skipped[/yellow] {name}')
    for name in result.result.get('failed_repositories', []):
        console.print(f'  [red]failed[/red] {name}')


@cli.command()
@click.option('--batch', 'batch_name', help='Batch name')
@click.option('--repository', '-r', help='Single repository (org/name)')
@click.pass_context
def cancel(ctx: click.Context, batch_name: Optional[str], repository: Optional[str]) -> None:
    """Cancel a queued or running migration."""
    result = _run_tool(
        ctx,
        'cancel_migration',
        {'batch_name': batch_name, 'repository': repository},
        persist=True,
    )
    _display_result(result)


@cli.command()
@click.argument('batch_name')
@click.pass_context
def retry(ctx: click.Context, batch_name: str) -> None:
    """Reset failed repositories of BATCH_NAME to pending."""
    result = _run_tool(
        ctx, 'retry_batch_failures', {'batch_name': batch_name}, persist=True
    )
    _display_result(result)


@cli.command()
@click.option('--batch', 'batch_name', help='Batch name')
@click.option('--repository', '-r', help='Single repository (org/name)')
@click.pass_context
def progress(ctx: click.Context, batch_name: Optional[str], repository: Optional[str]) -> None:
    """Show migration progress of a batch or a repository."""
    result = _run_tool(
        ctx,
        'get_migration_progress',
        {'batch_name': batch_name, 'repository': repository},
    )
    _display_progress(result.result['progress'])
    console.print(f'\n{result.summary}')


@cli.command()
@click.pass_context
def tools(ctx: click.Context) -> None:
    """List the available operations and their required tiers."""
    try:
        config = _load_config(ctx)
        engine = _create_engine(config)
    except Exception as e:
        console.print(f'[red]✗[/red] Failed to load tools: {e}')
        if ctx.obj.get('verbose'):
            console.print_exception()
        sys.exit(1)

    table = Table(title='Operations')
    table.add_column('Name', style='cyan')
    table.add_column('Tier', style='yellow')
    table.add_column('Description', style='green')
    for tool in engine.executor.available_tools():
        table.add_row(tool['name'], tool['tier'], tool['description'])
    console.print(table)


@cli.command()
@click.argument('tool_name')
@click.argument('arguments', nargs=-1)
@click.pass_context
def run(ctx: click.Context, tool_name: str, arguments: Tuple[str, ...]) -> None:
    """Run TOOL_NAME with key=value ARGUMENTS and print the raw result."""
    try:
        args = _parse_arguments(arguments)
    except click.BadParameter as e:
        console.print(f'[red]✗[/red] {e.message}')
        sys.exit(1)

    persist = required_tier(tool_name) != ToolTier.ANY
    result = _run_tool(ctx, tool_name, args, persist=persist)
    console.print(
        yaml.safe_dump(result.result, default_flow_style=False, sort_keys=False)
    )
    _display_next_steps(result)


def _parse_arguments(arguments: Tuple[str, ...]) -> Dict[str, Any]:
    """Parse key=value pairs.

    Booleans and numbers are typed the way YAML reads them; anything else
    stays a string.
    """
    args = {}
    for item in arguments:
        key, sep, value = item.partition('=')
        if not sep or not key:
            raise click.BadParameter(f'expected key=value, got: {item}')
        if not value:
            args[key] = None
            continue
        parsed = yaml.safe_load(value)
        args[key] = parsed if isinstance(parsed, (bool, int, float)) else value
    return args


def _run_tool(
    ctx: click.Context,
    tool_name: str,
    args: Dict[str, Any],
    persist: bool = False,
) -> ToolExecutionResult:
    """Execute an operation as the configured operator.

    Exits with status 1 when the operation fails. Successful mutating
    operations persist the state file.
    """
    try:
        config = _load_config(ctx)
        _setup_logging_with_config(ctx, config)
        engine = _create_engine(config)

        args = {k: v for k, v in args.items() if v is not None}
        result = engine.execute(tool_name, args, config.operator.to_auth_context())
        if result.success and persist:
            engine.save()
    except Exception as e:
        console.print(f'[red]✗[/red] {tool_name} failed: {e}')
        if ctx.obj.get('verbose'):
            console.print_exception()
        sys.exit(1)

    if not result.success:
        console.print(f'[red]✗[/red] {result.error} ({result.error_type})')
        sys.exit(1)
    return result


def _create_engine(config: Config) -> MigrationEngine:
    return MigrationEngine(config)


def _load_config(ctx: click.Context) -> Config:
    """Load configuration from file or environment."""
    config_path = ctx.obj.get('config_path')

    if config_path:
        if not Path(config_path).exists():
            raise FileNotFoundError(f'Configuration file not found: {config_path}')
        config = Config.from_file(config_path)
    else:
        config = None
        default_paths = ['config.yaml', 'config.yml', '.repo-migrate.yaml']
        for path in default_paths:
            if Path(path).exists():
                config = Config.from_file(path)
                break

        if config is None:
            try:
                config = Config.from_env()
            except Exception:
                raise FileNotFoundError(
                    'No configuration found. Use --config to specify a file or run "repo-migrate init" to create one.'
                )

    state_path = ctx.obj.get('state_path')
    if state_path:
        config.storage.state_file = state_path
    return config


def _setup_logging_with_config(ctx: click.Context, config: Config) -> None:
    """Setup logging with configuration from config file."""
    verbose = ctx.obj.get('verbose', False)

    log_level = 'DEBUG' if verbose else config.logging.level
    setup_logging(
        level=log_level, log_file=config.logging.file, log_format=config.logging.format
    )


def _display_result(result: ToolExecutionResult) -> None:
    console.print(f'[green]✓[/green] {result.summary}')
    _display_next_steps(result)


def _display_next_steps(result: ToolExecutionResult) -> None:
    """Print suggestions and the suggested follow-up."""
    for suggestion in result.suggestions:
        console.print(f'  • {suggestion}')
    if result.follow_up:
        console.print(
            f'\n[blue]Next:[/blue] {result.follow_up.description} '
            f'[dim]({result.follow_up.action})[/dim]'
        )


def _display_batches(batches) -> None:
    table = Table(title='Batches')
    table.add_column('ID', style='blue')
    table.add_column('Name', style='cyan')
    table.add_column('Type', style='magenta')
    table.add_column('Status', style='green')
    table.add_column('Repositories', style='yellow')
    for batch in batches:
        table.add_row(
            str(batch['id']),
            batch['name'],
            batch['type'],
            batch['status'],
            str(batch['repo_count']),
        )
    console.print(table)


def _display_progress(progress: Dict[str, Any]) -> None:
    table = Table(title='Migration Progress')
    table.add_column('State', style='cyan')
    table.add_column('Count', style='blue')

    table.add_row('Total', str(progress['total_count']))
    table.add_row('Pending', str(progress['pending_count']))
    table.add_row('Queued', str(progress['queued_count']))
    table.add_row('In Progress', str(progress['in_progress_count']))
    table.add_row('[green]Completed[/green]', str(progress['completed_count']))
    table.add_row('[red]Failed[/red]', str(progress['failed_count']))
    table.add_row('[yellow]Skipped[/yellow]', str(progress['skipped_count']))
    console.print(table)
    console.print(f"[blue]Complete:[/blue] {progress['percent_complete']:.1f}%")


def main() -> None:
    """Main entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print('\n[yellow]Operation cancelled by user[/yellow]')
        sys.exit(1)
    except Exception as e:
        console.print(f'[red]Unexpected error: {e}')
        sys.exit(1)


if __name__ == '__main__':
    main()
