# Read Kodi-style .nfo description files into simple dict/list/str trees

import logging
import pathlib
import xml.etree.ElementTree as ET

from nfotools import export

log = logging.getLogger()

# Repeated elements carrying one of these children are folded into a dict keyed by it.
fold_keys = ("name",)


class NfoParseError(ValueError):
  pass


def _read(source):
  if isinstance(source, (str, pathlib.PurePath)):
    with open(source, "rb") as f:
      return f.read()
  return source.read()


def _root(source):
  data = _read(source)
  try:
    return ET.fromstring(data)
  except ET.ParseError as e:
    # Kodi accepts a scraper URL after the closing root element; so do we.
    if (i := data.rfind(b">")) >= 0 and i + 1 < len(data):
      log.debug(f'Ignoring trailing data in "{source}": {data[i+1:].strip()[:80]!r}')
      try:
        return ET.fromstring(data[: i + 1])
      except ET.ParseError:
        pass
    raise NfoParseError(f'"{source}" is not a well-formed nfo file: {e}') from e


def _fold(values):
  for key in fold_keys:
    if all(isinstance(v, dict) and isinstance(v.get(key), str) for v in values):
      folded = {}
      for v in values:
        entry = {k: w for k, w in v.items() if k != key}
        if v[key] in folded:
          log.debug(f'Duplicate {key} "{v[key]}", keeping the last one')
        folded[v[key]] = entry
      return folded
  return values


def simplify(elem):
  """Turn an element into a str (leaf), dict (children) or None (empty)."""

  children = list(elem)
  if not children:
    text = (elem.text or "").strip()
    return text or None

  grouped = {}
  for child in children:
    if (v := simplify(child)) is not None:
      grouped.setdefault(child.tag, []).append(v)

  tree = {}
  for tag, values in grouped.items():
    if len(values) == 1:
      tree[tag] = values[0]
    else:
      tree[tag] = _fold(values)
  return tree or None


@export
def parse_nfo(source, expect=None):
  """Parse an nfo file (path or binary file object), stripping the root element.

  Empty elements are suppressed, repeated elements become lists and repeated
  elements with a <name> child become a dict keyed by that name.  A single
  <actor> is left as is: {"name": ..., "role": ...}.  If expect is given, warn
  when the root element has another name.
  """

  root = _root(source)
  if expect and root.tag != expect:
    log.warning(f'"{source}" is a <{root.tag}>, not the expected <{expect}> nfo file')
  tree = simplify(root)
  if not isinstance(tree, dict):
    log.warning(f'"{source}" has no metadata in its <{root.tag}> element')
    return {}
  log.debug(f'Parsed <{root.tag}> from "{source}" with keys {", ".join(tree.keys())}')
  return tree

