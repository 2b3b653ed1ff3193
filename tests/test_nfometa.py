import copy
import logging

import pytest

from nfometa import (
  canonical_roster,
  normalize_episode,
  normalize_movie,
  normalize_record,
  roster_shape,
  transfer_roles,
)


@pytest.mark.parametrize("actors, shape", [
  (None, "empty"),
  ({}, "empty"),
  ({"name": "X"}, "collapsed"),
  ({"name": "X", "role": "Y"}, "collapsed"),
  ({"X": {"role": "Y"}, "Z": {}}, "canonical"),
  ({"name": {"role": "An actor called name"}}, "canonical"),
  ([{"name": "X"}, {"role": "Y"}], "list"),
  ("X", "scalar"),
])
def test_roster_shape(actors, shape):
  assert roster_shape(actors) == shape


def test_canonical_roster_collapsed_name_only():
  assert canonical_roster({"name": "X"}) == {"X": {}}


def test_canonical_roster_collapsed_name_and_role():
  assert canonical_roster({"name": "X", "role": "Y"}) == {"X": {"role": "Y"}}


def test_canonical_roster_collapsed_keeps_siblings():
  assert canonical_roster({"name": "X", "role": "Y", "order": "2"}) == {"X": {"role": "Y", "order": "2"}}


def test_canonical_roster_canonical_is_kept():
  actors = {"X": {"role": "Y"}, "Z": {}}

  assert canonical_roster(actors) == {"X": {"role": "Y"}, "Z": {}}


def test_canonical_roster_actor_literally_called_name():
  assert canonical_roster({"name": {"role": "Himself"}}) == {"name": {"role": "Himself"}}


def test_canonical_roster_empty():
  assert canonical_roster(None) == {}


def test_canonical_roster_unfoldable_list(caplog):
  with caplog.at_level(logging.WARNING):
    roster = canonical_roster([{"name": "A", "role": "r"}, {"role": "orphan"}, "C"])

  assert roster == {"A": {"role": "r"}, "C": {}}
  assert "orphan" in caplog.text


def test_canonical_roster_scalar():
  assert canonical_roster("Solo") == {"Solo": {}}


def test_no_role_is_distinct_from_empty_role():
  assert canonical_roster({"X": {}}) != canonical_roster({"X": {"role": ""}})


def test_normalize_record_drops_empty_values():
  raw = {"title": "", "plot": "Plot", "genre": ["", "Drama"], "set": {"name": ""}, "tag": []}

  rec = normalize_record(raw)

  assert rec["title"] is None
  assert "title" not in rec
  assert rec["plot"] == "Plot"
  assert rec["genre"] == ["Drama"]
  assert "set" not in rec
  assert "tag" not in rec
  assert rec["actor"] == {}


def test_normalize_record_does_not_mutate_input():
  raw = {"title": "T", "actor": {"name": "X"}, "genre": ["", "Drama"]}
  before = copy.deepcopy(raw)

  normalize_record(raw)

  assert raw == before


def test_normalize_record_none():
  assert normalize_record(None) == {"actor": {}}


def test_transfer_roles_from_show():
  episode, show = normalize_episode(
    {"actor": {"A": {}, "B": {"role": "Bee"}}},
    {"actor": {"A": {"role": "Hero"}, "B": {"role": "Villain"}}},
  )

  assert episode["actor"]["A"] == {"role": "Hero"}


def test_transfer_roles_never_overwrites():
  episode, _ = normalize_episode(
    {"actor": {"B": {"role": "Bee"}}},
    {"actor": {"B": {"role": "Villain"}}},
  )

  assert episode["actor"]["B"] == {"role": "Bee"}


def test_transfer_roles_is_one_directional():
  episode, show = normalize_episode(
    {"actor": {"A": {"role": "Hero"}}},
    {"actor": {"A": {}}},
  )

  assert show["actor"]["A"] == {}
  assert episode["actor"]["A"] == {"role": "Hero"}


def test_transfer_roles_fills_empty_role():
  episode, _ = normalize_episode(
    {"actor": {"A": {"role": ""}}},
    {"actor": {"A": {"role": "Hero"}}},
  )

  assert episode["actor"]["A"] == {"role": "Hero"}


def test_transfer_roles_after_unfolding_both_sides():
  episode, show = normalize_episode({"actor": {"name": "A"}}, {"actor": {"name": "A", "role": "Hero"}})

  assert episode["actor"] == {"A": {"role": "Hero"}}
  assert show["actor"] == {"A": {"role": "Hero"}}


def test_transfer_roles_counts():
  item = normalize_record({"actor": {"A": {}, "B": {}, "C": {}}})
  container = normalize_record({"actor": {"A": {"role": "a"}, "C": {"role": "c"}}})

  assert transfer_roles(item, container) == 2
  assert item["actor"]["B"] == {}


def test_transfer_roles_does_not_touch_raw_show():
  raw_show = {"actor": {"A": {"role": "Hero"}}}
  raw_episode = {"actor": {"A": {}}}

  normalize_episode(raw_episode, raw_show)

  assert raw_episode == {"actor": {"A": {}}}


def test_normalize_episode_without_show():
  episode, show = normalize_episode({"title": "Pilot", "actor": {"name": "A"}})

  assert episode["title"] == "Pilot"
  assert episode["actor"] == {"A": {}}
  assert show == {"actor": {}}


def test_normalize_movie():
  movie = normalize_movie({"title": "Alien", "actor": {"name": "Sigourney Weaver", "role": "Ripley"}})

  assert movie["actor"] == {"Sigourney Weaver": {"role": "Ripley"}}
