# Various utility functions

import argparse
import datetime
import pathlib
import re


def export(func):
  """Decorator that causes function to be included in __all__."""

  if "__all__" not in func.__globals__:
    func.__globals__["__all__"] = []
  func.__globals__["__all__"].append(func.__name__)
  return func


class defdict(dict):
  """A Dictionary which returns None on non-existing keys."""

  def __getitem__(self, key):
    if key not in self:
      return None
    return super().__getitem__(key)

  def __setitem__(self, key, value):
    """n.b. Assigning None deletes the key."""

    if value is None:
      self.pop(key, None)
      return
    super().__setitem__(key, value)


def undefdict(v):
  """Recursively turn defdicts (and other mappings) back into plain dicts, e.g., for dumping."""

  if isinstance(v, dict):
    return {k: undefdict(w) for k, w in v.items()}
  if isinstance(v, (list, tuple)):
    return [undefdict(w) for w in v]
  return v


def present(v):
  """Is v a value at all?  None, empty strings, lists and dicts are not; "0" is."""

  if v is None:
    return False
  if isinstance(v, (str, list, tuple, dict)):
    return len(v) > 0
  return True


def first_present(*candidates):
  """Return the first present candidate, in order, or None."""

  for c in candidates:
    if present(c):
      return c
  return None


def date_stamp(today=None):
  """Today (or the given date) as a YYYY-MM-DD string."""

  if today is None:
    today = datetime.date.today()
  return today.strftime("%Y-%m-%d")


def filepath(p):
  p = pathlib.Path(p)
  if not p.exists():
    raise argparse.ArgumentTypeError(FileNotFoundError(p))
  if not p.is_file():
    raise argparse.ArgumentTypeError(IsADirectoryError(p))
  return p


# Split releases: "Movie pt. 2 (1990)", "Movie Part 2", "Movie CD2", "Movie - Disc 2"
part_pattern = r"(?i)(?:^|[\s._-])(?:pt|part|cd|dis[ck])\.?[\s._-]*(?P<part>\d+)(?=$|[\s._()\[\]-])"


def part_from_filename(p, pattern=None):
  """Sequence number of a multi-part release, if the filename says so."""

  name = pathlib.Path(p).stem
  if m := re.search(pattern or part_pattern, name):
    return int(m["part"])
  return None
