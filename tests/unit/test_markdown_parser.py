from tierstack.PARSERS.markdown_parser import MarkdownParser

DOCUMENT = """\
# Title

```yaml
services: {}
```

Some text.

~~~dockerfile title="backend"
FROM node:20-alpine
~~~

````markdown
```yaml
nested: true
```
````

```
plain
```
"""

def test_extract_code_blocks():
    blocks = MarkdownParser().extract_code_blocks(DOCUMENT)
    assert [b.language for b in blocks] == ["yaml", "dockerfile", "markdown", ""]
    assert blocks[0].content == "services: {}\n"
    assert blocks[0].line == 3
    assert blocks[1].info == 'dockerfile title="backend"'
    assert blocks[1].line == 9
    # The inner fence is content of the four-backtick block
    assert blocks[2].content == "```yaml\nnested: true\n```\n"
    assert blocks[3].content == "plain\n"

def test_unterminated_block():
    blocks = MarkdownParser().extract_code_blocks("text\n```json\n{\"a\": 1}\n")
    assert len(blocks) == 1
    assert blocks[0].content == '{"a": 1}\n'

def test_indented_fence():
    blocks = MarkdownParser().extract_code_blocks("- item\n\n  ```env\n  A=1\n  ```\n")
    assert blocks[0].language == "env"
    assert blocks[0].content == "A=1\n"

def test_parse_file(tmp_path):
    doc = tmp_path / "guide.md"
    doc.write_text(DOCUMENT, encoding="utf-8")
    assert len(MarkdownParser().parse(str(doc))) == 4
