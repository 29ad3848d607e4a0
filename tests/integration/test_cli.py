import os
import pytest
from click.testing import CliRunner
from tierstack.CLI.main import cli

GUIDE = os.path.join(os.path.dirname(__file__), "..", "..", "docs", "three-tier-guide.md")

@pytest.fixture
def stack(tmp_path):
    """A scaffolded stack with a real .env file and build contexts."""
    runner = CliRunner()
    result = runner.invoke(cli, ['scaffold', '--out', str(tmp_path)])
    assert result.exit_code == 0, result.output
    (tmp_path / ".env").write_text((tmp_path / ".env.example").read_text())
    return tmp_path

def test_cli_help():
    runner = CliRunner()
    result = runner.invoke(cli, ['--help'])
    assert result.exit_code == 0
    assert 'Validate the compose file' in result.output

def test_cli_check_no_file():
    runner = CliRunner()
    result = runner.invoke(cli, ['-f', 'non_existent.yml', 'check'])
    assert result.exit_code == 1
    assert 'Error: non_existent.yml not found.' in result.output

def test_cli_check_directory(tmp_path):
    result = CliRunner().invoke(cli, ['-f', str(tmp_path), 'check'])
    assert result.exit_code == 1
    assert f'Error: {tmp_path} not found.' in result.output

def test_cli_scaffold_help():
    runner = CliRunner()
    result = runner.invoke(cli, ['scaffold', '--help'])
    assert result.exit_code == 0
    assert '--db' in result.output

def test_check_scaffolded_stack(stack):
    (stack / "frontend").mkdir(exist_ok=True)
    runner = CliRunner()
    result = runner.invoke(cli, ['-f', str(stack / "docker-compose.yml"), 'check', '-v'])
    assert result.exit_code == 0, result.output
    assert '0 error(s), 0 warning(s)' in result.output
    assert 'ordering-not-readiness' in result.output

def test_check_reports_missing_credentials(stack):
    (stack / ".env").write_text("POSTGRES_USER=app\n")
    runner = CliRunner()
    result = runner.invoke(cli, ['-f', str(stack / "docker-compose.yml"), 'check'])
    assert result.exit_code == 1
    assert 'missing-credential' in result.output

def test_check_env_file_override(stack, tmp_path_factory):
    (stack / ".env").write_text("POSTGRES_USER=app\n")
    extra = tmp_path_factory.mktemp("secrets") / "db.env"
    extra.write_text("POSTGRES_PASSWORD=from-override\n")
    runner = CliRunner()
    result = runner.invoke(cli, ['-f', str(stack / "docker-compose.yml"), 'check', '--env-file', str(extra)])
    assert result.exit_code == 0, result.output

def test_check_strict(tmp_path):
    compose = tmp_path / "docker-compose.yml"
    compose.write_text("services:\n  web:\n    image: nginx\n    restart: always\n")
    runner = CliRunner()
    assert runner.invoke(cli, ['-f', str(compose), 'check']).exit_code == 0
    result = runner.invoke(cli, ['-f', str(compose), 'check', '--strict'])
    assert result.exit_code == 1
    assert 'latest-tag' in result.output

def test_check_invalid_yaml(tmp_path):
    compose = tmp_path / "docker-compose.yml"
    compose.write_text("services: [unclosed\n")
    result = CliRunner().invoke(cli, ['-f', str(compose), 'check'])
    assert result.exit_code == 1
    assert 'Error: Invalid YAML' in result.output

def test_order(stack):
    runner = CliRunner()
    compose = str(stack / "docker-compose.yml")
    result = runner.invoke(cli, ['-f', compose, 'order'])
    assert result.exit_code == 0
    assert result.output.split() == ['db', 'backend', 'frontend']

    result = runner.invoke(cli, ['-f', compose, 'order', '--waves'])
    assert result.output.splitlines() == ['1: db', '2: backend', '3: frontend']

    result = runner.invoke(cli, ['-f', compose, 'order', '--shutdown'])
    assert result.output.split() == ['frontend', 'backend', 'db']

def test_order_cycle(tmp_path):
    compose = tmp_path / "docker-compose.yml"
    compose.write_text("services:\n  a:\n    image: a:1\n    depends_on: [b]\n  b:\n    image: b:1\n    depends_on: [a]\n")
    result = CliRunner().invoke(cli, ['-f', str(compose), 'order'])
    assert result.exit_code == 1
    assert 'Circular dependency detected' in result.output

def test_discover(stack):
    result = CliRunner().invoke(cli, ['-f', str(stack / "docker-compose.yml"), 'discover', 'backend'])
    assert result.exit_code == 0
    assert 'Networks: app-network' in result.output
    assert 'DB_HOST=db' in result.output
    assert 'FRONTEND_HOST=frontend' in result.output

def test_discover_unknown_service(stack):
    result = CliRunner().invoke(cli, ['-f', str(stack / "docker-compose.yml"), 'discover', 'cache'])
    assert result.exit_code == 1

def test_dockerfile_command(stack):
    result = CliRunner().invoke(cli, ['dockerfile', str(stack / "backend" / "Dockerfile"),
                                      str(stack / "frontend" / "Dockerfile")])
    assert result.exit_code == 0, result.output
    assert 'multi-stage' in result.output
    assert 'single-stage' in result.output
    assert 'FROM node:20-alpine AS build' in result.output

def test_dockerfile_command_error(tmp_path):
    dockerfile = tmp_path / "Dockerfile"
    dockerfile.write_text("FROM alpine:3.20\nCOPY --from=nowhere /a /a\n")
    result = CliRunner().invoke(cli, ['dockerfile', str(dockerfile)])
    assert result.exit_code == 1
    assert 'unknown-stage' in result.output

def test_lint_docs():
    result = CliRunner().invoke(cli, ['lint-docs', '--strict', GUIDE])
    assert result.exit_code == 0, result.output
    assert '5 block(s) checked, 2 skipped' in result.output

def test_lint_docs_failure(tmp_path):
    doc = tmp_path / "guide.md"
    doc.write_text("```yaml\nkey: [\n```\n")
    result = CliRunner().invoke(cli, ['lint-docs', str(doc)])
    assert result.exit_code == 1
    assert 'invalid-yaml' in result.output

def test_scaffold_refuses_overwrite(stack):
    runner = CliRunner()
    result = runner.invoke(cli, ['scaffold', '--out', str(stack)])
    assert result.exit_code == 1
    assert 'use --force' in result.output
    assert runner.invoke(cli, ['scaffold', '--out', str(stack), '--force']).exit_code == 0

def test_scaffold_rejects_shared_host_port(tmp_path):
    result = CliRunner().invoke(cli, ['scaffold', '--out', str(tmp_path), '--frontend-port', '3000'])
    assert result.exit_code == 1
    assert 'host port 3000' in result.output
    assert not (tmp_path / "docker-compose.yml").exists()

def test_scaffold_invalid_project(tmp_path):
    result = CliRunner().invoke(cli, ['scaffold', '--out', str(tmp_path), '--project', 'Bad Name'])
    assert result.exit_code == 1
    assert 'Error:' in result.output
