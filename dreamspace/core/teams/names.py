"""Identifier and team-name generators."""

import secrets
import string

_ID_ALPHABET = string.ascii_lowercase + string.digits

ADJECTIVES = (
    "Alpha", "Beta", "Gamma", "Delta", "Epsilon",
    "Phoenix", "Titan", "Apex", "Nexus", "Vortex",
    "Stellar", "Nova", "Quantum", "Zenith", "Pinnacle",
    "Catalyst", "Momentum", "Velocity", "Synergy", "Dynamo",
    "Horizon", "Summit", "Peak", "Elevate", "Ascend",
    "Thunder", "Lightning", "Storm", "Aurora", "Eclipse",
    "Fusion", "Unity", "Alliance", "Collective", "Squadron",
    "Elite", "Prime", "Core", "Vanguard", "Frontier",
)

NOUNS = (
    "Team", "Squad", "Unit", "Force", "Group",
    "Alliance", "Collective", "Squadron", "Brigade", "Legion",
    "Champions", "Warriors", "Guardians", "Defenders", "Heroes",
    "Pioneers", "Trailblazers", "Explorers", "Voyagers", "Navigators",
    "Innovators", "Creators", "Builders", "Makers", "Crafters",
    "Dreamers", "Achievers", "Leaders", "Masters", "Experts",
    "Stars", "Eagles", "Lions", "Wolves", "Panthers",
    "Phoenix", "Dragons", "Titans", "Giants", "Rockets",
)


def _short_id(prefix: str, length: int) -> str:
    return prefix + "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def generate_team_id() -> str:
    """team_XXXXXX (6 lowercase alphanumerics)."""
    return _short_id("team_", 6)


def generate_team_name() -> str:
    """A readable adjective + noun pair, e.g. "Nova Voyagers"."""
    return f"{secrets.choice(ADJECTIVES)} {secrets.choice(NOUNS)}"
