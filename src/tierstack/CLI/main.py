# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Command Line Interface for tierstack.
"""
import click
import os
from pydantic import ValidationError
from ..MODELS.report import Report, Severity
from ..PARSERS.compose_parser import ComposeParser
from ..PARSERS.dockerfile_parser import DockerfileParser
from ..PARSERS.env_parser import EnvParser
from ..RUNNERS.dependency_resolver import DependencyResolver
from ..MANAGERS.network_manager import NetworkManager
from ..VALIDATORS.manifest_validator import ManifestValidator
from ..VALIDATORS.credentials_validator import CredentialsValidator
from ..VALIDATORS.dockerfile_validator import DockerfileValidator
from ..DOCS.doc_checker import DocumentChecker
from ..CONVERTERS.scaffold import ScaffoldConfig, StackScaffolder

@click.group()
@click.option('--file', '-f', default='docker-compose.yml', help='Compose file path')
@click.pass_context
def cli(ctx, file):
    """
    tierstack - checks and scaffolds three-tier container stacks.

    Works on the declarative files only: compose manifests, Dockerfiles,
    env files and markdown guides. Nothing is built or started.
    """
    ctx.ensure_object(dict)
    ctx.obj['file'] = file

def _load_manifest(ctx):
    """
    Parses the compose file given with --file, exiting with status 1 on failure.
    """
    path = ctx.obj['file']
    if not os.path.isfile(path):
        click.echo(f"Error: {path} not found.")
        ctx.exit(1)
    parser = ComposeParser()
    try:
        manifest = parser.parse(path)
    except (OSError, ValueError) as e:
        click.echo(f"Error: {e}")
        ctx.exit(1)
    for warning in parser.warnings:
        click.echo(f"Warning: {warning}")
    return manifest

def _print_report(report: Report, verbose: bool = False):
    for issue in report.issues:
        if issue.severity == Severity.INFO and not verbose:
            continue
        click.echo(str(issue))
    click.echo(f"{len(report.errors)} error(s), {len(report.warnings)} warning(s)")

def _exit_code(report: Report, strict: bool) -> int:
    if report.errors or (strict and report.warnings):
        return 1
    return 0

@cli.command()
@click.option('--env-file', 'env_files', multiple=True, type=click.Path(exists=True, dir_okay=False),
              help='Extra env file whose variables override the manifest (repeatable)')
@click.option('--strict', is_flag=True, help='Fail on warnings too')
@click.option('--verbose', '-v', is_flag=True, help='Show informational findings')
@click.pass_context
def check(ctx, env_files, strict, verbose):
    """Validate the compose file, its references and database credentials."""
    manifest = _load_manifest(ctx)
    base_dir = os.path.dirname(os.path.abspath(ctx.obj['file']))

    overrides = {}
    for env_file in env_files:
        overrides.update(EnvParser.parse(env_file))

    report = ManifestValidator().validate(manifest, base_dir=base_dir)
    report.merge(CredentialsValidator().validate(manifest, base_dir=base_dir, env=overrides))
    _print_report(report, verbose)
    ctx.exit(_exit_code(report, strict))

@cli.command()
@click.option('--waves', is_flag=True, help='Group services that may start in parallel')
@click.option('--shutdown', is_flag=True, help='Print the shutdown order instead')
@click.pass_context
def order(ctx, waves, shutdown):
    """Print the service startup order."""
    manifest = _load_manifest(ctx)
    resolver = DependencyResolver()
    try:
        if waves:
            for index, wave in enumerate(resolver.resolve_waves(manifest), start=1):
                click.echo(f"{index}: {', '.join(wave)}")
        elif shutdown:
            for name in resolver.shutdown_order(manifest):
                click.echo(name)
        else:
            for name in resolver.resolve_order(manifest):
                click.echo(name)
    except ValueError as e:
        click.echo(f"Error: {e}")
        ctx.exit(1)

@cli.command()
@click.argument('service')
@click.pass_context
def discover(ctx, service):
    """Show the hostnames a service can reach."""
    manifest = _load_manifest(ctx)
    if service not in manifest.services:
        click.echo(f"Error: service {service} is not defined.")
        ctx.exit(1)
    network = NetworkManager(manifest)
    click.echo(f"Networks: {', '.join(network.networks_of(service)) or '-'}")
    for key, value in network.discovery_env(service).items():
        click.echo(f"{key}={value}")

@cli.command()
@click.argument('paths', nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option('--strict', is_flag=True, help='Fail on warnings too')
@click.pass_context
def dockerfile(ctx, paths, strict):
    """Validate Dockerfiles and list their build stages."""
    parser = DockerfileParser()
    validator = DockerfileValidator()
    report = Report()
    for path in paths:
        try:
            recipe = parser.parse(path)
        except ValueError as e:
            report.error("invalid-dockerfile", str(e), path)
            continue
        kind = "multi-stage" if recipe.is_multi_stage else "single-stage"
        click.echo(f"{path}: {kind}")
        for stage in recipe.stages:
            alias = f" AS {stage.alias}" if stage.alias else ""
            click.echo(f"  {stage.index}: FROM {stage.base_image}{alias} ({len(stage.instructions)} instructions)")
        report.merge(validator.validate(recipe, source=path))
    _print_report(report)
    ctx.exit(_exit_code(report, strict))

@cli.command('lint-docs')
@click.argument('paths', nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option('--strict', is_flag=True, help='Fail on warnings too')
@click.pass_context
def lint_docs(ctx, paths, strict):
    """Check that fenced code blocks in markdown files are valid."""
    checker = DocumentChecker()
    report = Report()
    for path in paths:
        report.merge(checker.check_file(path))
    _print_report(report)
    click.echo(f"{report.checked} block(s) checked, {report.skipped} skipped")
    ctx.exit(_exit_code(report, strict))

@cli.command()
@click.option('--out', '-o', default='.', help='Output directory')
@click.option('--project', default='three-tier', help='Project name')
@click.option('--db', 'database', type=click.Choice(['postgres', 'mysql']), default='postgres')
@click.option('--network', default='app-network', help='Custom network name')
@click.option('--isolation', type=click.Choice(['bridge', 'overlay']), default='bridge')
@click.option('--frontend-port', type=int, default=8080)
@click.option('--backend-port', type=int, default=3000)
@click.option('--force', is_flag=True, help='Overwrite existing files')
@click.pass_context
def scaffold(ctx, out, project, database, network, isolation, frontend_port, backend_port, force):
    """Generate compose file, Dockerfiles and env template for a three-tier stack."""
    try:
        config = ScaffoldConfig(
            project=project,
            database=database,
            network=network,
            isolation=isolation,
            frontend_port=frontend_port,
            backend_port=backend_port,
        )
    except ValidationError as e:
        click.echo(f"Error: {e}")
        ctx.exit(1)

    try:
        written = StackScaffolder(config).write(out, overwrite=force)
    except FileExistsError as e:
        click.echo(f"Error: {e} (use --force to overwrite)")
        ctx.exit(1)
    for path in written:
        click.echo(f"  {path}")

def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})

if __name__ == '__main__':
    main()
