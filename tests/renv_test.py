from lockbom.extractors import renv
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.position import Position

RENV_LOCK = '''{
  "R": {
    "Version": "4.1.0",
    "Repositories": [
      {
        "Name": "CRAN",
        "URL": "https://cloud.r-project.org"
      }
    ]
  },
  "Packages": {
    "morning": {
      "Package": "morning",
      "Version": "0.1.0",
      "Source": "Repository",
      "Repository": "CRAN",
      "Hash": "6d4d7a1f5d2a3b0c"
    },
    "mine": {
      "Package": "mine",
      "Version": "0.0.1",
      "Source": "GitHub",
      "RemoteSha": "abc123"
    },
    "BiocGenerics": {
      "Package": "BiocGenerics",
      "Version": "0.40.0",
      "Source": "Bioconductor"
    }
  }
}
'''


class TestRenvLock:
    """Tests for the renv.lock extractor."""

    def test_packages(self, write_file, extract_with):
        packages = extract_with(renv.extract, write_file('renv.lock', RENV_LOCK))

        assert [(p.name, p.version) for p in packages] == [('morning', '0.1.0'), ('mine', '0.0.1')]
        assert all(p.ecosystem == Ecosystem.CRAN for p in packages)
        assert packages[1].commit == 'abc123'

    def test_positions(self, write_file, extract_with):
        path = write_file('renv.lock', RENV_LOCK)
        morning = extract_with(renv.extract, path)[0]

        assert morning.block_position.line == Position(start=12, end=18)
        assert morning.name_position.line == Position(start=13, end=13)
        assert morning.name_position.column == Position(start=19, end=26)
        assert morning.version_position.line == Position(start=14, end=14)
        assert morning.version_position.filename == path

    def test_empty_file(self, write_file, extract_with):
        assert extract_with(renv.extract, write_file('renv.lock', '')) == []
