"""YAML dump helpers for scenario files.

``fixtures_to_vectors.py`` writes each collected scenario as a YAML file that
``title-escrow run`` loads back with ``yaml.safe_load``. Digit-only strings,
such as hex digests or stringified asset ids, are quoted so they load back as
strings rather than integers.
"""

from __future__ import annotations

from pathlib import Path

import yaml


class PlainDumper(yaml.SafeDumper):
    pass


def _str_representer(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    # Quote hex strings that would otherwise load back as integers.
    style = "'" if data.isdigit() else None
    return dumper.represent_scalar("tag:yaml.org,2002:str", data, style=style)


PlainDumper.add_representer(str, _str_representer)


def dump_yaml(data: dict) -> str:
    return yaml.dump(data, Dumper=PlainDumper, sort_keys=False, width=4096)


def write_yaml(path: Path, data: dict) -> None:
    path.write_text(dump_yaml(data))
