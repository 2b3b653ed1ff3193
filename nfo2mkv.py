#!/usr/bin/env python
# -*- coding: utf-8 -*-

prog = "nfo2mkv"
version = "0.3"
author = "nfo2mkv contributors"
desc = """Map Kodi .nfo metadata (tvshow + episode, or movie) to Matroska tags;
write them as a tag .xml file and/or apply them to an .mkv file with mkvpropedit.
"""

import argparse
import json
import logging
import logging.handlers
import os
import pathlib
import re
import shlex
import subprocess
import sys
import tempfile
import yaml

from nfotools import filepath, part_from_filename, part_pattern, undefdict
from nfoparse import *  # noqa: F403
from nfoparse import NfoParseError
from nfometa import *  # noqa: F403
from mkvtags import *  # noqa: F403
from mkvtags import TagError

parser = None
args = None
log = logging.getLogger()

json_exts = set(["json", "cfg"])
yaml_exts = set(["yaml", "yml"])
config_keys = {"mkvpropedit", "part_pattern", "logfile", "dryrun"}
logformat = "[%(levelname)s] %(asctime)s: %(message)s"
handlers = []


class ApplyError(RuntimeError):
  pass


def cfgload(fn):
  with open(fn, "r", encoding="utf-8") as f:
    if fn.suffix[1:] in yaml_exts:
      return yaml.safe_load(f)
    elif fn.suffix[1:] in json_exts:
      return json.load(f)
  raise ValueError(f"{fn} is not a .yaml or .json config file")


def config_defaults(fn):
  """Parser defaults from a config file, skipping keys we do not know."""

  try:
    cfg = cfgload(fn)
  except yaml.YAMLError as e:
    raise ValueError(f"{fn} is not a valid YAML config file: {e}") from e
  except json.JSONDecodeError as e:
    raise ValueError(f"{fn} is not a valid JSON config file: {e}") from e

  if cfg is None:
    return {}
  if not isinstance(cfg, dict):
    raise ValueError(f"{fn} does not contain a mapping of settings")
  for k in sorted(set(cfg) - config_keys):
    log.warning(f'Unknown setting "{k}" in {fn}, ignoring.')
  return {k: v for k, v in cfg.items() if k in config_keys}


def dump(title, data):
  log.debug(f"{title}:\n" + yaml.safe_dump(undefdict(data), allow_unicode=True, sort_keys=False, indent=2))


def spew(filename, data):
  log.info(f'Writing tags to "{filename}"')
  if args.dryrun:
    return filename
  with open(filename, "wt", encoding="utf-8") as f:
    f.write(data)
  return filename


def apply_tags_to_file(mkvfile, tagsfile):
  """Replace all tags of mkvfile with those in tagsfile."""

  cl = [args.mkvpropedit, mkvfile, "--tags", f"all:{tagsfile}"]
  log.info(shlex.join(map(str, cl)))
  if args.dryrun:
    return

  try:
    subprocess.run(list(map(str, cl)), check=True, capture_output=True, text=True)
  except FileNotFoundError as e:
    raise ApplyError(f'Unable to run "{args.mkvpropedit}": {e}') from e
  except subprocess.CalledProcessError as e:
    # mkvpropedit: 1 means warnings, but the file was modified
    if e.returncode == 1:
      log.warning(f'{args.mkvpropedit} warned about "{mkvfile}": {(e.stdout or e.stderr or "").strip()}')
      return
    raise ApplyError(f"{args.mkvpropedit} failed with code {e.returncode}: {(e.stderr or e.stdout or '').strip()!r}") from e


def detect_part():
  if args.part is not None:
    return args.part
  for f in (args.mkv, args.movie):
    if f and (p := part_from_filename(f, args.part_pattern)) is not None:
      log.info(f'"{f.name}" is part {p} of a split release')
      return p
  return None


def build_tags():
  if args.movie:
    movie = parse_nfo(args.movie, expect="movie")
    dump("Parsed movie metadata", movie)
    movie = normalize_movie(movie, log=log)
    return movie_tags(movie, part=detect_part(), log=log)

  episode = parse_nfo(args.episode, expect="episodedetails")
  show = parse_nfo(args.tvshow, expect="tvshow") if args.tvshow else {}
  dump("Parsed show metadata", show)
  dump("Parsed episode metadata", episode)
  episode, show = normalize_episode(episode, show, log=log)
  return episode_tags(episode, show, log=log)


def write_tags(xml):
  if args.xml:
    spew(args.xml, xml)
    if args.mkv:
      apply_tags_to_file(args.mkv, args.xml)
  elif args.mkv:
    # Use a temporary file if we only have to interact with mkvtoolnix
    if args.dryrun:
      apply_tags_to_file(args.mkv, "<temporary tags file>")
      return
    with tempfile.NamedTemporaryFile("wt", suffix=".xml", encoding="utf-8", delete=False) as tf:
      tf.write(xml)
    try:
      apply_tags_to_file(args.mkv, tf.name)
    finally:
      os.remove(tf.name)
  else:
    # The xml declares UTF-8, whatever the console encoding is
    sys.stdout.flush()
    out = getattr(sys.stdout, "buffer", None)
    if out is None:
      sys.stdout.write(xml)
    else:
      out.write(xml.encode("utf-8"))
      out.flush()


def main():
  try:
    tags = build_tags()
    dump("Tag data", tags)
    if not tags["Tag"]:
      log.warning("No metadata found, the tags would be empty.")
    xml = format_matroska_xml(tags, log=log)
    log.debug(f"Formatted XML data:\n{xml}")
    write_tags(xml)
  except (TagError, NfoParseError, ApplyError, OSError) as e:
    log.error(str(e))
    return 1
  return 0


def make_parser():
  parser = argparse.ArgumentParser(
    fromfile_prefix_chars="@", prog=prog, description=desc, epilog="Written by: " + author
  )
  parser.set_defaults(loglevel=logging.WARN, mkvpropedit="mkvpropedit", part_pattern=part_pattern)
  parser.add_argument("--version", action="version", version="%(prog)s " + version)
  parser.add_argument(
    "-v", "--verbose", dest="loglevel", action="store_const", const=logging.INFO,
    help="print informational (or higher) log messages.",
  )
  parser.add_argument(
    "-d", "--debug", dest="loglevel", action="store_const", const=logging.DEBUG,
    help="print debugging (or higher) log messages, including the parsed metadata.",
  )
  parser.add_argument(
    "--taciturn", dest="loglevel", action="store_const", const=logging.ERROR,
    help="only print error level (or higher) log messages.",
  )
  parser.add_argument("-l", "--log", dest="logfile", type=pathlib.Path, action="store", help="location of alternate log file.")
  parser.add_argument("-c", "--config", type=filepath, action="store", help="YAML or JSON file with default settings.")
  parser.add_argument(
    "-n", "--dryrun", dest="dryrun", action="store_true",
    help="do not write files or run mkvpropedit, but only print what would be done.",
  )
  kind = parser.add_mutually_exclusive_group(required=True)
  kind.add_argument("--episode", type=filepath, action="store", help="episode .nfo file")
  kind.add_argument("--movie", type=filepath, action="store", help="movie .nfo file")
  parser.add_argument("--tvshow", type=filepath, action="store", help="tvshow .nfo file for --episode")
  parser.add_argument("--mkv", type=filepath, action="store", help="apply the tags to this .mkv file, replacing all existing tags")
  parser.add_argument("--xml", type=pathlib.Path, action="store", help="write the tags to this .xml file; without --xml or --mkv print them")
  parser.add_argument("--part", type=int, action="store", help="part number of a split movie; guessed from the file name if unspecified")
  parser.add_argument("--mkvpropedit", action="store", help="mkvpropedit executable (default: %(default)s)")
  parser.add_argument("--part-pattern", dest="part_pattern", action="store", help="regular expression with a 'part' group to find the part number in file names")
  return parser


def setup_logging():
  for h in handlers:
    log.removeHandler(h)
    h.close()
  handlers.clear()
  log.setLevel(0)

  if args.logfile:
    flogger = logging.handlers.WatchedFileHandler(args.logfile, "a", "utf-8")
    flogger.setLevel(logging.DEBUG)
    flogger.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s]: %(message)s"))
    handlers.append(flogger)

  slogger = logging.StreamHandler()
  slogger.setLevel(args.loglevel)
  slogger.setFormatter(logging.Formatter(logformat))
  handlers.append(slogger)

  for h in handlers:
    log.addHandler(h)


def cli(argv=None):
  global parser, args

  if argv is None:
    argv = sys.argv[1:]
    inifile = pathlib.Path(sys.argv[0]).with_suffix(".ini")
    if inifile.exists():
      argv.insert(0, f"@{inifile}")

  parser = make_parser()
  pre, _ = parser.parse_known_args(argv)
  if pre.config:
    try:
      parser.set_defaults(**config_defaults(pre.config))
    except (ValueError, OSError) as e:
      parser.error(str(e))

  args = parser.parse_args(argv)
  if args.tvshow and not args.episode:
    parser.error("--tvshow can only be used with --episode")
  try:
    re.compile(args.part_pattern)
  except re.error as e:
    parser.error(f"invalid --part-pattern {args.part_pattern!r}: {e}")
  if args.dryrun and args.loglevel > logging.INFO:
    args.loglevel = logging.INFO

  setup_logging()
  log.info(f"{prog} {version} starting up.")
  return main()


if __name__ == "__main__":
  sys.stdout.reconfigure(encoding="utf-8")
  sys.exit(cli())
