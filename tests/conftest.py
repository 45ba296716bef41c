import pytest

from lockbom.lockfile.depfile import open_local_dep_file


@pytest.fixture
def write_file(tmp_path):
    """Write `content` under tmp_path and return the absolute path."""
    def write(name: str, content: str | bytes) -> str:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding='utf-8')
        return str(path)
    return write


@pytest.fixture
def extract_with():
    """Run an extract function on a file path."""
    def run(extract, path: str):
        with open_local_dep_file(path) as file:
            return extract(file)
    return run
