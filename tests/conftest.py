import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))


@pytest.fixture
def write_nfo(tmp_path):
  def write(name, xml):
    p = tmp_path / name
    p.write_text(xml, encoding="utf-8")
    return p
  return write
