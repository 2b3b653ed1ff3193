# Normalize parsed nfo records before they are turned into tags

import logging

from nfotools import defdict, export, present

log = logging.getLogger()


@export
def roster_shape(actors):
  """Classify a raw <actor> field.

  "empty":     nothing there
  "collapsed": a single actor, {"name": "X", "role": ...}, left unfolded by the parser
  "canonical": {"X": {"role": ...}, "Y": {}}
  "list":      entries the parser could not fold (some lack a name)
  "scalar":    a bare name, <actor>X</actor>
  """

  if not present(actors):
    return "empty"
  if isinstance(actors, dict):
    return "collapsed" if isinstance(actors.get("name"), str) else "canonical"
  if isinstance(actors, list):
    return "list"
  return "scalar"


def _entry(d):
  return {k: v for k, v in d.items() if k != "name" and v is not None}


@export
def canonical_roster(actors, log=log):
  """Return the actor field as {name: {"role": role, ...}} whatever shape it arrived in."""

  shape = roster_shape(actors)
  if shape == "empty":
    return {}
  if shape == "collapsed":
    if not actors["name"]:
      log.warning(f"Skipping actor without a name: {actors!r}")
      return {}
    log.debug(f'Unfolding single actor "{actors["name"]}"')
    return {actors["name"]: _entry(actors)}
  if shape == "canonical":
    return {name: _entry(d) if isinstance(d, dict) else {} for name, d in actors.items() if present(name)}
  if shape == "scalar":
    return {str(actors): {}}

  roster = {}
  for a in actors:
    if isinstance(a, dict) and present(a.get("name")) and isinstance(a["name"], str):
      roster[a["name"]] = _entry(a)
    elif isinstance(a, str) and present(a):
      roster[a] = {}
    else:
      log.warning(f"Skipping actor without a name: {a!r}")
  return roster


def _clean(v):
  if isinstance(v, str):
    return v if v else None
  if isinstance(v, list):
    vs = [w for w in map(_clean, v) if w is not None]
    return vs if vs else None
  if isinstance(v, dict):
    d = defdict((k, w) for k, w in ((k, _clean(w)) for k, w in v.items()) if w is not None)
    return d if d else None
  return v


@export
def normalize_record(raw, log=log):
  """A copy of raw with empty values dropped and a canonical roster in "actor"."""

  rec = defdict()
  for k, v in (raw or {}).items():
    if k != "actor":
      rec[k] = _clean(v)
  rec["actor"] = canonical_roster((raw or {}).get("actor"), log=log)
  return rec


@export
def transfer_roles(item, container, log=log):
  """Copy roles recorded for the container (show) down to item (episode) actors lacking one."""

  show_roster = (container or {}).get("actor") or {}
  n = 0
  for name, data in (item.get("actor") or {}).items():
    if present(data.get("role")):
      continue
    if present(role := (show_roster.get(name) or {}).get("role")):
      log.debug(f'Role of "{name}" taken from show: "{role}"')
      data["role"] = role
      n += 1
  return n


@export
def normalize_episode(episode, show=None, log=log):
  episode = normalize_record(episode, log=log)
  show = normalize_record(show, log=log)
  # Sometimes, roles are tagged for the show, but not for the episodes
  if n := transfer_roles(episode, show, log=log):
    log.info(f"Transferred {n} role{'' if n == 1 else 's'} from show to episode")
  return episode, show


@export
def normalize_movie(movie, log=log):
  return normalize_record(movie, log=log)
