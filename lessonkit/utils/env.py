"""Read `KEY=value` files into the process environment before settings load."""

from __future__ import annotations

import os
import re
from pathlib import Path

_ASSIGNMENT = re.compile(r"^(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=\s*(.*)$")


def default_env_path() -> Path:
  return Path(__file__).resolve().parents[2] / ".env"


def _unquote(value: str) -> str:
  if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
    return value[1:-1]
  return value


def parse_env_lines(lines: list[str]) -> dict[str, str]:
  """Parse assignments, skipping comments and anything that is not `KEY=value`."""
  values: dict[str, str] = {}
  for line in lines:
    stripped = line.strip()
    if stripped.startswith("#"):
      continue
    found = _ASSIGNMENT.match(stripped)
    if found is not None:
      values[found.group(1)] = _unquote(found.group(2).strip())
  return values


def load_env_file(path: Path, *, override: bool = False) -> dict[str, str]:
  """Export the file's assignments; existing variables win unless `override` is set."""
  if not path.is_file():
    return {}
  values = parse_env_lines(path.read_text(encoding="utf-8").splitlines())
  for key, value in values.items():
    if override or key not in os.environ:
      os.environ[key] = value
  return values
