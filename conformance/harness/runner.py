#!/usr/bin/env python3
"""
Cofre Conformance Runner

Replays escrow vectors against the in-process Python spec and any configured
HTTP implementations, and reports where they diverge.
"""

import asyncio
import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiohttp
import click

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT / "tools"))

from cofre_spec.state_digest import ledger_digest  # noqa: E402
from cofre_spec.state_transition import apply_ix  # noqa: E402
from cofre_spec.types import LedgerState  # noqa: E402
from fixtures_io import ix_from_json, read_vectors_yaml, state_from_json  # noqa: E402

from comparator import ComparisonResult, ResultComparator  # noqa: E402
from config import PYTHON_SPEC_CLIENT, ClientConfig, HarnessConfig  # noqa: E402
from reporter import ConformanceReport, ReportGenerator, SuiteResult, TestResult  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


class PythonSpecClient:
    """In-process reference implementation backed by `cofre_spec`."""

    name = "Python spec"

    def __init__(self) -> None:
        self.state = LedgerState()

    async def connect(self) -> None:
        return None

    async def close(self) -> None:
        return None

    async def reset_state(self) -> bool:
        self.state = LedgerState()
        return True

    async def load_state(self, state: Dict[str, Any]) -> Optional[str]:
        self.state = state_from_json(state)
        return ledger_digest(self.state)

    async def get_state_digest(self) -> Optional[str]:
        return ledger_digest(self.state)

    async def execute_ix(self, ix_input: Dict[str, Any]) -> Dict[str, Any]:
        ix = ix_from_json(ix_input["ix"])
        self.state, result = apply_ix(self.state, ix)
        return {
            "success": result.ok,
            "error_code": int(result.error.code) if result.error else 0,
            "logs": result.logs,
            "state_digest": ledger_digest(self.state),
        }


class ConformanceClient:
    """HTTP client for a single implementation."""

    def __init__(self, config: ClientConfig):
        self.config = config
        self.name = config.name
        self.session: Optional[aiohttp.ClientSession] = None

    async def connect(self) -> None:
        timeout = aiohttp.ClientTimeout(total=self.config.timeout)
        self.session = aiohttp.ClientSession(timeout=timeout)

    async def close(self) -> None:
        if self.session:
            await self.session.close()

    async def _post(self, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        async with self.session.post(f"{self.config.endpoint}{path}", json=payload) as resp:
            resp.raise_for_status()
            return await resp.json()

    async def reset_state(self) -> bool:
        try:
            data = await self._post("/state/reset")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"[{self.name}] Reset failed: {e}")
            return False
        return bool(data.get("success", False))

    async def load_state(self, state: Dict[str, Any]) -> Optional[str]:
        """Load a JSON ledger state; returns the state digest on success."""
        try:
            data = await self._post("/state/load", state)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"[{self.name}] Load state failed: {e}")
            return None
        return data.get("state_digest") if data.get("success") else None

    async def get_state_digest(self) -> Optional[str]:
        try:
            async with self.session.get(f"{self.config.endpoint}/state/digest") as resp:
                resp.raise_for_status()
                data = await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"[{self.name}] Get digest failed: {e}")
            return None
        return data.get("state_digest")

    async def execute_ix(self, ix_input: Dict[str, Any]) -> Dict[str, Any]:
        """Execute one instruction given as typed JSON plus instruction data."""
        try:
            data = await self._post(
                "/ix/execute",
                {"ix": ix_input.get("ix"), "data_hex": ix_input.get("data_hex", "")},
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"[{self.name}] Execute instruction failed: {e}")
            return {"success": False, "error": str(e)}
        if not data.get("state_digest"):
            data["state_digest"] = await self.get_state_digest()
        return data


class ConformanceHarness:
    """Runs vectors on every implementation and compares the outcomes."""

    def __init__(self, config: HarnessConfig):
        self.config = config
        self.clients: Dict[str, Any] = {PYTHON_SPEC_CLIENT: PythonSpecClient()}
        self.comparator = ResultComparator(reference_client=PYTHON_SPEC_CLIENT)
        self.reporter = ReportGenerator(config.result_dir)

    async def setup(self) -> None:
        for key, remote in self.config.get_enabled_clients().items():
            self.clients[key] = ConformanceClient(remote)
            await self.clients[key].connect()
            logger.info(f"{remote.name}: {remote.endpoint}")

    async def teardown(self) -> None:
        await asyncio.gather(*(c.close() for c in self.clients.values()))

    async def reset_all(self) -> bool:
        return all(await asyncio.gather(*(c.reset_state() for c in self.clients.values())))

    async def load_state_all(self, state: Dict[str, Any], vector_name: str) -> ComparisonResult:
        """Load identical state everywhere and verify the digests agree."""
        loaded = {key: await c.load_state(state) for key, c in self.clients.items()}
        for key in (k for k, d in loaded.items() if not d):
            logger.error(f"{key} rejected the pre-state of {vector_name}")
        return self.comparator.compare_state_digests(
            {k: d for k, d in loaded.items() if d}, vector_name
        )

    async def execute_ix_all(self, ix_input: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
        return {key: await c.execute_ix(ix_input) for key, c in self.clients.items()}

    def _result(self, vector_name: str, start: float, **kwargs: Any) -> TestResult:
        return TestResult(
            vector_name=vector_name,
            suite_name="",
            execution_time_ms=(time.time() - start) * 1000,
            **kwargs,
        )

    async def run_vector(self, vector: Dict[str, Any]) -> TestResult:
        vector_name = vector.get("name", "unknown")
        start = time.time()

        if vector.get("runnable") is False:
            return self._result(vector_name, start, passed=True, skipped=True)

        ix_input = vector.get("input") or {}
        if not ix_input.get("ix"):
            # Derivation and layout vectors carry no instruction to replay.
            return self._result(vector_name, start, passed=True, skipped=True)

        try:
            if not await self.reset_all():
                return self._result(vector_name, start, passed=False, error="Failed to reset clients")

            if vector.get("pre_state") is not None:
                loaded = await self.load_state_all(vector["pre_state"], vector_name)
                if loaded.has_divergences:
                    return self._result(
                        vector_name, start, passed=False, comparison=loaded, error="State load divergence"
                    )

            results = await self.execute_ix_all(ix_input)
            comparison = self.comparator.compare_results(results, vector_name)

            if self.config.check_expected and "expected" in vector:
                against_vector = self.comparator.compare_expected(
                    vector["expected"], results[PYTHON_SPEC_CLIENT], vector_name
                )
                comparison.divergences.extend(against_vector.divergences)
                comparison.success = not comparison.divergences

            return self._result(
                vector_name, start, passed=not comparison.has_divergences, comparison=comparison
            )

        except Exception as e:
            logger.exception(f"Error running vector {vector_name}")
            return self._result(vector_name, start, passed=False, error=str(e))

    async def run_suite(self, suite_path: str) -> SuiteResult:
        path = Path(suite_path)
        suite = SuiteResult(suite_name=path.stem, execution_time_ms=0.0)
        logger.info(f"Suite {suite.suite_name} ({path})")
        start = time.time()

        for vector in read_vectors_yaml(path).get("test_vectors", []):
            outcome = await self.run_vector(vector)
            outcome.suite_name = suite.suite_name
            suite.test_results.append(outcome)
            self._log_outcome(outcome)
            if self.config.stop_on_first_failure and not outcome.passed:
                break

        suite.execution_time_ms = (time.time() - start) * 1000
        return suite

    def _log_outcome(self, outcome: TestResult) -> None:
        if outcome.skipped:
            tag = "SKIP"
        else:
            tag = "PASS" if outcome.passed else "FAIL"
        logger.info(f"  [{tag}] {outcome.vector_name}")
        for div in outcome.comparison.divergences if outcome.comparison else []:
            logger.debug(f"    {div.field}: {div.reference_client}={div.expected} {div.client}={div.actual}")

    async def run_all(self, vector_paths: List[str]) -> ConformanceReport:
        start = time.time()
        suite_results: List[SuiteResult] = []
        for suite_path in vector_paths:
            suite = await self.run_suite(suite_path)
            suite_results.append(suite)
            if suite.failed_tests and self.config.stop_on_first_failure:
                break

        return self.reporter.generate_report(
            suite_results=suite_results,
            clients=list(self.clients.keys()),
            reference_client=self.comparator.reference_client,
            execution_time_ms=(time.time() - start) * 1000,
        )


def collect_vector_files(target: str) -> List[str]:
    """A single YAML file, or every .yaml/.yml file below a directory."""
    path = Path(target)
    if path.is_file():
        return [str(path)]
    return sorted(str(p) for p in path.rglob("*") if p.suffix in (".yaml", ".yml"))


@click.command()
@click.option("--vectors", default=None, help="Vector directory or a single YAML file")
@click.option("--reference-endpoint", default=None, help="Reference program endpoint URL")
@click.option("--program-endpoint", default=None, help="Program-under-test endpoint URL")
@click.option("--result-dir", default=None, help="Where to write the JSON report and summary")
@click.option("--no-expected", is_flag=True, help="Skip checking the Python spec against vector expectations")
@click.option("--verbose", is_flag=True, help="Log every divergent field")
@click.option("--stop-on-failure", is_flag=True, help="Stop at the first failing vector")
def main(
    vectors: Optional[str],
    reference_endpoint: Optional[str],
    program_endpoint: Optional[str],
    result_dir: Optional[str],
    no_expected: bool,
    verbose: bool,
    stop_on_failure: bool,
) -> None:
    """Run Cofre escrow conformance vectors."""
    config = HarnessConfig.from_env()
    for key, label, url in (
        ("reference", "Reference program", reference_endpoint),
        ("program", "Program under test", program_endpoint),
    ):
        if url:
            config.set_endpoint(key, label, url)
    config.result_dir = result_dir or config.result_dir
    config.check_expected = config.check_expected and not no_expected
    config.verbose = config.verbose or verbose
    config.stop_on_first_failure = config.stop_on_first_failure or stop_on_failure
    if config.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    target = vectors or config.vector_dir
    files = collect_vector_files(target)
    if not files:
        raise click.ClickException(f"no vector files under {target}")
    logger.info(f"Loaded {len(files)} vector files from {target}")

    async def run() -> bool:
        harness = ConformanceHarness(config)
        await harness.setup()
        try:
            report = await harness.run_all(files)
        finally:
            await harness.teardown()
        reporter = harness.reporter
        reporter.write_json_report(report)
        reporter.write_summary(report)
        reporter.print_summary(report)
        return report.total_failed == 0

    sys.exit(0 if asyncio.run(run()) else 1)


if __name__ == "__main__":
    main()
