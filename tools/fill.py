"""Run pytest and generate Cofre escrow fixtures (EEST-style flow)."""

from __future__ import annotations

import argparse
import os
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
OUT = ROOT / "fixtures"


def main() -> int:
    parser = argparse.ArgumentParser(description="Fill fixtures from the pytest suites")
    parser.add_argument("--output", default=str(OUT), help="Fixture output directory")
    parser.add_argument("pytest_args", nargs="*", help="Extra arguments passed to pytest")
    args = parser.parse_args()

    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join([str(ROOT / "src"), str(ROOT)])

    cmd = [
        sys.executable,
        "-m",
        "pytest",
        str(ROOT / "tests"),
        "-q",
        "--output",
        args.output,
        *args.pytest_args,
    ]
    print("Running:", " ".join(cmd))
    return subprocess.call(cmd, env=env, cwd=str(ROOT))


if __name__ == "__main__":
    raise SystemExit(main())
