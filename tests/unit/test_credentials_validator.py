import pytest
from tierstack.PARSERS.compose_parser import ComposeParser
from tierstack.VALIDATORS.credentials_validator import CredentialsValidator, database_engine

STACK = """
services:
  backend:
    image: api:1.0
    env_file: .env
    environment:
      DB_HOST: db
    networks: [app-network]
  db:
    image: postgres:16-alpine
    env_file: .env
    networks: [app-network]
networks:
  app-network: {}
"""

def parse(content):
    return ComposeParser(context={}).parse_from_string(content)

@pytest.mark.parametrize("image, engine", [
    ("postgres:16", "postgres"),
    ("docker.io/library/postgres", "postgres"),
    ("postgis/postgis:16-3.4", "postgres"),
    ("mysql:8.4", "mysql"),
    ("mariadb:11", "mariadb"),
    ("redis:7", None),
    (None, None),
])
def test_database_engine(image, engine):
    assert database_engine(image) == engine

def test_credentials_from_env_file(tmp_path):
    (tmp_path / ".env").write_text("POSTGRES_USER=app\nPOSTGRES_PASSWORD=secret\n")
    report = CredentialsValidator().validate(parse(STACK), base_dir=str(tmp_path))
    assert report.issues == []

def test_missing_credentials(tmp_path):
    report = CredentialsValidator().validate(parse(STACK), base_dir=str(tmp_path))
    assert report.codes() == ["missing-credential"]
    assert report.issues[0].location == "services.db"
    assert "POSTGRES_PASSWORD" in report.issues[0].message

def test_overrides(tmp_path):
    report = CredentialsValidator().validate(
        parse(STACK), base_dir=str(tmp_path), env={"POSTGRES_PASSWORD": "x"}
    )
    assert report.ok

def test_trust_auth():
    report = CredentialsValidator().validate(parse("""
services:
  db:
    image: postgres:16
    environment:
      POSTGRES_HOST_AUTH_METHOD: trust
"""))
    assert report.issues == []

def test_mysql_alternatives():
    report = CredentialsValidator().validate(parse("""
services:
  db:
    image: mysql:8.4
    environment:
      MYSQL_RANDOM_ROOT_PASSWORD: "yes"
"""))
    assert report.ok

def test_inline_secret():
    report = CredentialsValidator().validate(parse("""
services:
  db:
    image: postgres:16
    environment:
      POSTGRES_PASSWORD: hunter2
"""))
    assert report.codes() == ["inline-secret"]
    assert report.ok

@pytest.mark.parametrize("image, variable", [
    ("postgres:16", "POSTGRES_PASSWORD_FILE"),
    ("mysql:8.4", "MYSQL_ROOT_PASSWORD_FILE"),
    ("mariadb:11", "MARIADB_ROOT_PASSWORD_FILE"),
])
def test_password_from_secrets_file(image, variable):
    report = CredentialsValidator().validate(parse(f"""
services:
  db:
    image: {image}
    environment:
      {variable}: /run/secrets/db_password
"""))
    assert report.issues == []

def test_blank_value_is_taken_from_shell():
    manifest = ComposeParser(context={"POSTGRES_PASSWORD": "s3cret"}).parse_from_string("""
services:
  db:
    image: postgres:16
    environment:
      POSTGRES_PASSWORD:
""")
    report = CredentialsValidator().validate(manifest)
    assert "missing-credential" not in report.codes()

def test_unreachable_host():
    report = CredentialsValidator().validate(parse("""
services:
  backend:
    image: api:1.0
    environment:
      DATABASE_URL: postgres://app:pw@db:5432/app
    networks: [public]
  db:
    image: postgres:16
    environment:
      POSTGRES_HOST_AUTH_METHOD: trust
    networks: [private]
networks:
  public: {}
  private: {}
"""))
    assert report.codes() == ["unreachable-host"]
    assert "DATABASE_URL" in report.errors[0].message

def test_loopback_host():
    report = CredentialsValidator().validate(parse("""
services:
  backend:
    image: api:1.0
    environment:
      DB_HOST: localhost
  db:
    image: postgres:16
    environment:
      POSTGRES_HOST_AUTH_METHOD: trust
"""))
    assert report.codes() == ["loopback-host"]

def test_no_database():
    report = CredentialsValidator().validate(parse("services:\n  web:\n    image: nginx:1.27\n"))
    assert report.codes() == ["no-database"]
