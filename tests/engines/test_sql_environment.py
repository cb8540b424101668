"""Unit tests for engines.sql.environment."""

import pytest

from condsql.engines.sql.environment import VariableEnvironment, normalize_name


def test_normalize_name() -> None:
    assert normalize_name("$flag") == "flag"
    assert normalize_name("flag") == "flag"
    assert normalize_name("$$flag") == "$flag"


def test_names_are_case_sensitive() -> None:
    env = VariableEnvironment({"Flag": 1})
    assert env.merged() == {"Flag": 1}
    assert "flag" not in env.merged()


def test_local_overrides_global() -> None:
    env = VariableEnvironment({"flag": False, "region": "EU"})
    assert env.merged({"$flag": True}) == {"flag": True, "region": "EU"}


def test_merge_does_not_mutate_globals() -> None:
    env = VariableEnvironment({"$flag": False})
    merged = env.merged({"flag": True, "extra": 1})
    merged["other"] = 2
    assert dict(env.globals) == {"flag": False}
    assert env.merged() == {"flag": False}


def test_globals_read_only() -> None:
    env = VariableEnvironment({"a": 1})
    with pytest.raises(TypeError):
        env.globals["a"] = 2  # type: ignore[index]


def test_input_mapping_copied() -> None:
    source = {"a": 1}
    env = VariableEnvironment(source)
    source["a"] = 2
    assert env.merged() == {"a": 1}


def test_empty() -> None:
    assert VariableEnvironment().merged(None) == {}
