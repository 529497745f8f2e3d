"""Tests for environment-driven settings"""

from relgraph.db.config import Settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("RELGRAPH_BACKEND", raising=False)
    s = Settings(_env_file=None)
    assert s.backend == "memory"
    assert s.core_node_name == "Абай"
    assert s.admin_password_hash == ""
    assert not hasattr(s, "admin_password")


def test_environment_uses_prefix(monkeypatch):
    monkeypatch.setenv("RELGRAPH_BACKEND", "postgres")
    monkeypatch.setenv("RELGRAPH_SPAWN_RADIUS_MAX", "20")
    monkeypatch.setenv("BACKEND", "surrealdb")

    s = Settings(_env_file=None)

    assert s.backend == "postgres"
    assert s.spawn_radius_max == 20.0


def test_unknown_variables_are_ignored(monkeypatch):
    monkeypatch.setenv("RELGRAPH_ADMIN_PASSWORD", "plaintext")
    s = Settings(_env_file=None)
    assert "admin_password" not in s.model_dump()
