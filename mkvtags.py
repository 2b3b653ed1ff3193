# Build Matroska tag documents from normalized nfo records
#
# Relevant documentation:
#   https://www.matroska.org/technical/tagging.html
#   https://kodi.wiki/view/NFO_files/TV_shows
#   https://kodi.wiki/view/NFO_files/Movies

import logging
import xml.etree.ElementTree as ET

from nfotools import date_stamp, defdict, export, first_present, present

log = logging.getLogger()

# TargetTypeValues
COLLECTION = 70
SEASON = 60
ITEM = 50

xmldecl = '<?xml version="1.0" encoding="UTF-8"?>\n<!DOCTYPE Tags SYSTEM "matroskatags.dtd">\n'

# Bookkeeping tags which do not count as metadata of their own
stamp_tags = {"DATE_TAGGED"}


class TagError(Exception):
  pass


class MalformedInput(TagError, ValueError):
  """A field has a shape other than absent, string or list of strings."""


class StructuralViolation(TagError):
  """A tag level lacks its Targets or Simple element."""


@export
def make_string_tag(name, value):
  """Zero, one or (for lists) several {"Name": name, "String": value} simple tags."""

  if not present(value):
    return []
  if isinstance(value, str):
    return [{"Name": name, "String": value}]
  if isinstance(value, list):
    for v in value:
      if not isinstance(v, str) or not v:
        raise MalformedInput(f"make_string_tag: unsupported {type(v).__name__} list entry for {name}: {v!r}")
    return [{"Name": name, "String": v} for v in value]
  raise MalformedInput(f"make_string_tag: unsupported {type(value).__name__} value for {name}: {value!r}")


@export
def make_actor_tags(roster):
  if not present(roster):
    return []
  if not isinstance(roster, dict):
    raise MalformedInput(f"make_actor_tags: unsupported {type(roster).__name__} roster: {roster!r}")

  tags = []
  for actor in sorted(roster):
    data = roster[actor]
    if data is not None and not isinstance(data, dict):
      raise MalformedInput(f"make_actor_tags: unsupported {type(data).__name__} entry for actor {actor}: {data!r}")
    tag = {"Name": "ACTOR", "String": actor}
    if present(role := (data or {}).get("role")):
      tag["Simple"] = make_string_tag("CHARACTER", role)
    tags.append(tag)
  return tags


def level(target, *tags):
  return {"Targets": {"TargetTypeValue": target}, "Simple": [t for ts in tags for t in ts]}


def part_string(part):
  if part is None:
    return None
  if isinstance(part, bool) or not isinstance(part, (int, str)):
    raise MalformedInput(f"Part number must be an integer, not {part!r}")
  try:
    return str(int(part))
  except ValueError as e:
    raise MalformedInput(f"Part number must be an integer, not {part!r}") from e


# Collection (70):
#   TITLE -> tvshow:<showtitle>|episode:<showtitle>
#   SUMMARY -> tvshow:<plot>
#   [GENRE] -> tvshow:<genre>
#   [ACTOR{CHARACTER}] -> tvshow:<actor>
#   LAW_RATING -> tvshow:<mpaa>
# Season (60):
#   PART_NUMBER -> <season>|tvshow:<season>
#   PRODUCTION_STUDIO -> <studio>
# Episode (50):
#   PART_NUMBER -> <episode>
#   TITLE -> <title>
#   ORIGINAL_TITLE -> <originaltitle>
#   SUMMARY -> <plot>|<outline>
#   SYNOPSIS -> <outline>|<plot>
#   DATE_RELEASED -> <aired>|<premiered>
#   DIRECTOR -> <director>
#   WRITTEN_BY -> <credits>
#   [ACTOR{CHARACTER}] -> <actor>
#   PRODUCTION_STUDIO -> <studio>|tvshow:<studio>
#   LAW_RATING -> <mpaa>|tvshow:<mpaa>
#   DATE_TAGGED -> today
@export
def episode_tags(episode, show=None, today=None, log=log):
  ep = defdict(episode or {})
  sh = defdict(show or {})
  season = ep["season"]
  if not present(season) and present(sh["season"]):
    # tvshow.nfo usually has the number of seasons here, not the season of this episode
    log.info(f"Episode has no season, using the show's: {sh['season']}")
    season = sh["season"]

  tags = {"Tag": [
    level(COLLECTION,
      make_string_tag("TITLE",             first_present(sh["showtitle"], ep["showtitle"])),
      make_string_tag("SUMMARY",           sh["plot"]),
      make_string_tag("GENRE",             sh["genre"]),
      make_actor_tags(sh["actor"]),
      make_string_tag("LAW_RATING",        sh["mpaa"]),
    ),
    level(SEASON,
      make_string_tag("PART_NUMBER",       season),
      make_string_tag("PRODUCTION_STUDIO", ep["studio"]),
    ),
    level(ITEM,
      make_string_tag("PART_NUMBER",       ep["episode"]),
      make_string_tag("TITLE",             ep["title"]),
      make_string_tag("ORIGINAL_TITLE",    ep["originaltitle"]),
      make_string_tag("SUMMARY",           first_present(ep["plot"], ep["outline"])),
      make_string_tag("SYNOPSIS",          first_present(ep["outline"], ep["plot"])),
      make_string_tag("DATE_RELEASED",     first_present(ep["aired"], ep["premiered"])),
      make_string_tag("DIRECTOR",          ep["director"]),
      make_string_tag("WRITTEN_BY",        ep["credits"]),
      make_actor_tags(ep["actor"]),
      make_string_tag("PRODUCTION_STUDIO", first_present(ep["studio"], sh["studio"])),
      make_string_tag("LAW_RATING",        first_present(ep["mpaa"], sh["mpaa"])),
      make_string_tag("DATE_TAGGED",       date_stamp(today)),
    ),
  ]}

  return filter_levels(tags, log=log)


# Collection (70):
#   TITLE -> <set><name>|<set>
# Movie (50):
#   PART_NUMBER -> part of a split release, if any
#   TITLE -> <title>
#   ORIGINAL_TITLE -> <originaltitle>
#   SUMMARY -> <plot>|<outline>
#   SYNOPSIS -> <outline>|<plot>
#   DATE_RELEASED -> <premiered>|<aired>
#   DIRECTOR -> <director>
#   WRITTEN_BY -> <credits>
#   [ACTOR{CHARACTER}] -> <actor>
#   [GENRE] -> <genre>
#   PRODUCTION_STUDIO -> <studio>
#   LAW_RATING -> <mpaa>
#   DATE_TAGGED -> today
@export
def movie_tags(movie, part=None, today=None, log=log):
  mv = defdict(movie or {})
  # Older nfo files have <set>Name</set> rather than <set><name>Name</name></set>
  movieset = mv["set"]
  setname = movieset.get("name") if isinstance(movieset, dict) else movieset

  tags = {"Tag": [
    level(COLLECTION,
      make_string_tag("TITLE",             setname),
    ),
    level(ITEM,
      make_string_tag("PART_NUMBER",       part_string(part)),
      make_string_tag("TITLE",             mv["title"]),
      make_string_tag("ORIGINAL_TITLE",    mv["originaltitle"]),
      make_string_tag("SUMMARY",           first_present(mv["plot"], mv["outline"])),
      make_string_tag("SYNOPSIS",          first_present(mv["outline"], mv["plot"])),
      make_string_tag("DATE_RELEASED",     first_present(mv["premiered"], mv["aired"])),
      make_string_tag("DIRECTOR",          mv["director"]),
      make_string_tag("WRITTEN_BY",        mv["credits"]),
      make_actor_tags(mv["actor"]),
      make_string_tag("GENRE",             mv["genre"]),
      make_string_tag("PRODUCTION_STUDIO", mv["studio"]),
      make_string_tag("LAW_RATING",        mv["mpaa"]),
      make_string_tag("DATE_TAGGED",       date_stamp(today)),
    ),
  ]}

  return filter_levels(tags, log=log)


@export
def filter_levels(tags, log=log):
  """Drop absent tags and levels without metadata (DATE_TAGGED alone does not count),
  highest TargetTypeValue first."""

  levels = []
  for tag in tags.get("Tag") or []:
    target = tag.get("Targets")
    simple = tag.get("Simple")
    if target is None or "TargetTypeValue" not in target:
      raise StructuralViolation("Data misses required element 'Targets'")
    if simple is None:
      raise StructuralViolation("Data misses required element 'Simple'")

    # Only defined tags...
    simple = [s for s in simple if s is not None]
    if not all("Name" in s and "String" in s for s in simple):
      raise StructuralViolation("Data misses required element 'Name' or 'String'")
    # Skip this level if we have no metadata whatsoever
    if all(s["Name"] in stamp_tags for s in simple):
      log.debug(f"Skipping empty level {target['TargetTypeValue']}")
      continue
    levels.append({"Targets": target, "Simple": simple})

  levels.sort(key=lambda t: int(t["Targets"]["TargetTypeValue"]), reverse=True)
  return {"Tag": levels}


def _simple_element(parent, tag):
  s = ET.SubElement(parent, "Simple")
  ET.SubElement(s, "Name").text = tag["Name"]
  ET.SubElement(s, "String").text = tag["String"]
  for sub in tag.get("Simple") or []:
    _simple_element(s, sub)


@export
def format_matroska_xml(tags, log=log):
  """Serialize a tag document; Matroska knows no xml attributes and wants Targets before Simple
  and Name before String before nested Simple."""

  root = ET.Element("Tags")
  for tag in filter_levels(tags, log=log)["Tag"]:
    t = ET.SubElement(root, "Tag")
    targets = ET.SubElement(t, "Targets")
    for k, v in tag["Targets"].items():
      ET.SubElement(targets, k).text = str(v)
    for s in tag["Simple"]:
      _simple_element(t, s)

  ET.indent(root, space="  ")
  return xmldecl + ET.tostring(root, encoding="unicode") + "\n"
