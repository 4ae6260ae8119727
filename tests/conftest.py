"""Shared test fixtures for Fences."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from pathlib import Path


_POLICY = """\
base_dir: src
layers:
  domain: ["domain/**"]
  infra: ["infra/**"]
  app: ["app/**"]
rules:
  domain: []
  infra: [domain]
  app: [domain, infra]
excluded:
  - "**/*.spec"
"""


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


@pytest.fixture()
def tmp_project(tmp_path: Path) -> Path:
    """Create a small layered TypeScript project.

    Layout:
    - fences.yml: domain <- infra <- app, ``*.spec`` excluded
    - src/domain/order.ts imports infra (forbidden) and ./money (same layer)
    - src/domain/money.ts, no imports
    - src/domain/order.spec.ts imports infra (excluded file)
    - src/infra/db.ts imports domain (allowed)
    - src/app/main.ts imports infra (allowed) and lodash (unmatched)
    - src/misc/stray.ts in no layer (unclassified)
    - src/node_modules/dep/index.ts (never collected)
    """
    project = tmp_path / "proj"
    project.mkdir()
    _write(project / "fences.yml", _POLICY)
    src = project / "src"
    _write(
        src / "domain" / "order.ts",
        "import { Db } from '../infra/db';\nimport { Money } from './money';\n",
    )
    _write(src / "domain" / "money.ts", "export class Money {}\n")
    _write(src / "domain" / "order.spec.ts", "import { Db } from '../infra/db';\n")
    _write(src / "infra" / "db.ts", "import { Order } from '../domain/order';\nexport class Db {}\n")
    _write(
        src / "app" / "main.ts",
        "import { Db } from '../infra/db';\nimport lodash from 'lodash';\n",
    )
    _write(src / "misc" / "stray.ts", "import { Db } from '../infra/db';\n")
    _write(src / "node_modules" / "dep" / "index.ts", "import x from '../../domain/order';\n")
    return project
