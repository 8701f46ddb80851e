"""Test fixtures for GitHub Sync DB."""

from .fake_github import FakeGitHubClient, FakeResponse, client_factory_for, scenario_routes

__all__ = [
    "FakeGitHubClient",
    "FakeResponse",
    "client_factory_for",
    "scenario_routes",
]
