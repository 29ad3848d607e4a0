import os
from tierstack.DOCS.doc_checker import DocumentChecker

GUIDE = os.path.join(os.path.dirname(__file__), "..", "..", "docs", "three-tier-guide.md")

def test_bundled_guide_is_clean():
    report = DocumentChecker().check_file(GUIDE)
    assert report.issues == []
    assert report.checked == 5
    assert report.skipped == 2

def test_invalid_yaml_points_at_document_line():
    doc = "# Guide\n\n```yaml\nservices:\n  web: [unclosed\n```\n"
    report = DocumentChecker().check(doc, source="guide.md")
    assert report.codes() == ["invalid-yaml"]
    assert report.issues[0].location.startswith("guide.md:")
    line = int(report.issues[0].location.split(":")[1])
    assert 4 <= line <= 6

def test_manifest_snippet_is_validated():
    doc = """\
```yaml
services:
  db:
    image: postgres:16
    volumes:
      - data:/var/lib/postgresql/data
```
"""
    report = DocumentChecker().check(doc, source="guide.md")
    assert report.codes() == ["undeclared-volume"]
    assert report.issues[0].location == "guide.md:2"
    assert "services.db" in report.issues[0].message

def test_plain_yaml_is_only_parsed():
    report = DocumentChecker().check("```yml\nnetworks:\n  app: {}\n```\n")
    assert report.issues == []
    assert report.checked == 1

def test_unset_variables_are_warnings():
    doc = "```yaml\nservices:\n  web:\n    image: nginx:${TAG}\n    restart: always\n```\n"
    report = DocumentChecker().check(doc)
    assert "unset-variable" in report.codes()
    assert report.ok

def test_unquoted_port_is_a_warning():
    doc = "```yaml\nservices:\n  web:\n    image: nginx:1.27\n    restart: always\n    ports:\n      - 8080:80\n```\n"
    report = DocumentChecker().check(doc)
    assert "unquoted-port" in report.codes()

def test_dockerfile_errors():
    doc = """\
Intro

```dockerfile
FROM node:20-alpine AS build
COPY --from=builder /src /src
```
"""
    report = DocumentChecker().check(doc, source="guide.md")
    assert report.codes() == ["unknown-stage"]
    assert report.issues[0].location == "guide.md:5"

def test_dockerfile_syntax_error():
    report = DocumentChecker().check("```Dockerfile\nFROM alpine:3.20\n42\n```\n", source="g.md")
    assert report.codes() == ["invalid-dockerfile"]
    assert report.issues[0].location == "g.md:3"

def test_env_and_json_blocks():
    doc = "```env\nA=1\nnot valid here\n```\n\n```json\n{\"a\": }\n```\n"
    report = DocumentChecker().check(doc, source="g.md")
    assert report.codes() == ["invalid-env-line", "invalid-json"]
    assert report.issues[0].location == "g.md:3"
    assert report.issues[1].location == "g.md:7"

def test_skipped_blocks():
    doc = "```bash\necho hi\n```\n\n```yaml no-check\n: : :\n```\n\n```\nplain\n```\n"
    report = DocumentChecker().check(doc)
    assert report.checked == 0
    assert report.skipped == 3
