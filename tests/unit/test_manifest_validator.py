from tierstack.PARSERS.compose_parser import ComposeParser
from tierstack.VALIDATORS.manifest_validator import ManifestValidator
from tierstack.MODELS.report import Severity

VALID = """
services:
  frontend:
    build: ./frontend
    restart: unless-stopped
    ports: ["8080:80"]
    depends_on: [backend]
    networks: [app-network]
  backend:
    build: ./backend
    restart: unless-stopped
    ports: ["3000:3000"]
    env_file: .env
    depends_on:
      db:
        condition: service_healthy
    networks: [app-network]
  db:
    image: postgres:16-alpine
    restart: unless-stopped
    volumes: ["db-data:/var/lib/postgresql/data"]
    healthcheck:
      test: ["CMD-SHELL", "pg_isready"]
    networks: [app-network]

networks:
  app-network:
    driver: bridge

volumes:
  db-data:
"""

def validate(content, base_dir=None):
    manifest = ComposeParser(context={}).parse_from_string(content)
    return ManifestValidator().validate(manifest, base_dir=base_dir)

def test_valid_manifest():
    report = validate(VALID)
    assert report.ok
    assert report.warnings == []
    # depends_on without a condition only orders startup
    assert report.codes() == ["ordering-not-readiness"]
    assert report.issues[0].severity == Severity.INFO
    assert report.issues[0].location == "services.frontend"

def test_no_services():
    report = validate("services: {}\n")
    assert report.codes() == ["no-services"]
    assert not report.ok

def test_reference_errors():
    report = validate("""
services:
  api:
    image: api:1.0
    restart: always
    depends_on: [db]
    volumes: ["data:/data", "./src:/app/src"]
    networks: [backend]
  worker:
    restart: always
    networks: [backend]
networks:
  backend: {}
  unused-net: {}
volumes:
  spare: {}
""")
    codes = report.codes()
    assert "unknown-dependency" in codes
    assert "undeclared-volume" in codes
    assert "missing-source" in codes
    assert "unused-volume" in codes
    assert "unused-network" in codes
    assert "undeclared-network" not in codes
    # Bind mounts are not volumes
    assert len([c for c in codes if c == "undeclared-volume"]) == 1

def test_undeclared_network():
    report = validate("""
services:
  api:
    image: api:1.0
    restart: always
    networks: [app-network]
""")
    assert report.codes() == ["undeclared-network"]

def test_port_checks():
    report = validate("""
services:
  a:
    image: a:1.0
    restart: always
    ports: ["8080:80"]
  b:
    image: b:1.0
    restart: always
    ports: ["8080:81", "8080:81/udp", "70000:80"]
""")
    codes = report.codes()
    assert codes.count("host-port-conflict") == 1
    assert codes.count("invalid-port") == 1

def test_wildcard_host_address_conflicts_with_specific_address():
    report = validate("""
services:
  a:
    image: a:1.0
    restart: always
    ports: ["8080:80", "127.0.0.1:9090:90"]
  b:
    image: b:1.0
    restart: always
    ports: ["127.0.0.1:8080:81", "0.0.0.0:9090:91", "127.0.0.2:7070:70", "127.0.0.3:7070:71"]
""")
    assert report.codes().count("host-port-conflict") == 2

def test_readiness_conditions():
    report = validate("""
services:
  api:
    image: api:1.0
    restart: always
    depends_on:
      db:
        condition: service_healthy
  db:
    image: postgres:16
    restart: always
""")
    assert report.codes() == ["healthy-without-healthcheck"]

def test_image_and_restart_hints():
    report = validate("""
services:
  web:
    image: nginx
""")
    assert report.codes() == ["latest-tag", "no-restart-policy"]
    assert report.ok

def test_cycle():
    report = validate("""
services:
  a:
    image: a:1
    restart: always
    depends_on: [b]
  b:
    image: b:1
    restart: always
    depends_on: [a]
""")
    errors = [i for i in report.errors if i.code == "dependency-cycle"]
    assert len(errors) == 1
    assert "a -> b -> a" in errors[0].message

def test_files_checked_with_base_dir(tmp_path):
    report = validate(VALID, base_dir=str(tmp_path))
    codes = report.codes()
    assert "missing-env-file" in codes
    assert codes.count("missing-build-context") == 2

    (tmp_path / ".env").write_text("POSTGRES_PASSWORD=x\n")
    (tmp_path / "frontend").mkdir()
    (tmp_path / "backend").mkdir()
    assert validate(VALID, base_dir=str(tmp_path)).ok
