"""
Test-network bootstrap and the end-to-end scenarios built on it.

``bootstrap_shuffle`` stands up a disposable Shuffle project against a live
test network:

    1. enable open module publishing (root account)
    2. fresh temporary home + project directory; create the project
    3. create the developer and test accounts (treasury-compliance account)
    4. deploy the compiled package (one asyncio.run, torn down afterwards)

Steps run strictly in order and stop at the first failure. Nothing is rolled
back: a failed bootstrap leaves its temporary directory for inspection.
"""

from __future__ import annotations

import asyncio
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, TextIO

from . import new
from .account import create_accounts_onchain
from .build import Compiler, build_move_packages
from .chain import BlockingClient, LocalAccount, NetworkContext, TransactionFactory, enable_open_publishing
from .config import DEFAULT_BLOCKCHAIN, DEFAULT_NETWORK, Network, NetworksConfig
from .deploy import deploy
from .devapi import DevApiClient
from .home import Home
from .logging import get_logger, stage_scope
from .runners import run_deno_test, run_deno_test_at_path, run_move_unit_tests

log = get_logger(__name__)

PROJECT_DIR = "project"
INTEGRATION_DIR = "integration"


class ShuffleTestHelper:
    """Owns a temporary Shuffle home and project for one bootstrap."""

    def __init__(
        self,
        base_dir: Path,
        factory: TransactionFactory,
        *,
        compiler: Optional[Compiler] = None,
        out: Optional[TextIO] = None,
    ) -> None:
        self.base_dir = Path(base_dir)
        self.factory = factory
        self.compiler = compiler
        self.out = out
        self._home = Home(self.base_dir / ".shuffle")
        self._project_path = self.base_dir / PROJECT_DIR

    @classmethod
    def new(
        cls,
        factory: TransactionFactory,
        *,
        network: Optional[Network] = None,
        compiler: Optional[Compiler] = None,
        out: Optional[TextIO] = None,
        base_dir: Optional[Path] = None,
    ) -> "ShuffleTestHelper":
        root = Path(base_dir) if base_dir is not None else Path(tempfile.mkdtemp(prefix="shuffle-"))
        helper = cls(root, factory, compiler=compiler, out=out)
        home = helper.home()
        home.generate_shuffle_path_if_nonexistent()
        if network is None:
            home.write_default_networks_config_into_toml()
        else:
            home.get_networks_path().write_text(
                NetworksConfig(networks={network.name: network}).to_toml(), encoding="utf-8"
            )
        key = home.generate_key_file(home.account_key_path)
        home.save_address(home.account_address_path, key)
        home.generate_test_account()
        return helper

    def home(self) -> Home:
        return self._home

    def project_path(self) -> Path:
        return self._project_path

    def latest_account(self) -> LocalAccount:
        return LocalAccount.from_private_key(self._home.read_private_key(self._home.account_key_path))

    def test_account(self) -> LocalAccount:
        return LocalAccount.from_private_key(self._home.read_private_key(self._home.get_test_key_path()))

    def create_project(self) -> Path:
        return new.handle(
            self._home, DEFAULT_BLOCKCHAIN, self._project_path, compiler=self.compiler, out=self.out
        )

    def create_accounts(self, treasury: LocalAccount, client: BlockingClient) -> List[str]:
        return create_accounts_onchain(
            client, self.factory, treasury, [self.latest_account(), self.test_account()]
        )

    async def deploy_project(self, rest_url: str) -> List[str]:
        package = build_move_packages(self._project_path, compiler=self.compiler, out=self.out)
        async with DevApiClient(rest_url) as client:
            return await deploy(client, self.latest_account(), package, self.factory)

    def cleanup(self) -> None:
        shutil.rmtree(self.base_dir, ignore_errors=True)


def bootstrap_shuffle(
    ctx: NetworkContext,
    *,
    compiler: Optional[Compiler] = None,
    out: Optional[TextIO] = None,
    base_dir: Optional[Path] = None,
) -> ShuffleTestHelper:
    with stage_scope("bootstrap", network=ctx.json_rpc_url):
        enable_open_publishing(ctx.client, ctx.factory, ctx.root_account)

        network = Network(name=DEFAULT_NETWORK, json_rpc_url=ctx.json_rpc_url, dev_api_url=ctx.rest_api_url)
        helper = ShuffleTestHelper.new(
            ctx.factory, network=network, compiler=compiler, out=out, base_dir=base_dir
        )
        helper.create_project()

        helper.create_accounts(ctx.treasury_compliance_account, ctx.client)

        asyncio.run(helper.deploy_project(ctx.rest_api_url))
        log.info("bootstrap complete", extra={"path": str(helper.project_path())})
    return helper


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


def sample_package_end_to_end(
    ctx: NetworkContext,
    *,
    compiler: Optional[Compiler] = None,
    deno_bin: Optional[str] = None,
    base_dir: Optional[Path] = None,
) -> None:
    helper = bootstrap_shuffle(ctx, compiler=compiler, base_dir=base_dir)
    run_move_unit_tests(helper.project_path(), compiler)
    home = helper.home()
    run_deno_test(
        home,
        helper.project_path(),
        ctx.json_rpc_url,
        ctx.rest_api_url,
        home.get_test_key_path(),
        home.get_test_address(),
        deno_bin=deno_bin,
    )


def typescript_sdk_integration(
    ctx: NetworkContext,
    *,
    compiler: Optional[Compiler] = None,
    deno_bin: Optional[str] = None,
    base_dir: Optional[Path] = None,
) -> None:
    helper = bootstrap_shuffle(ctx, compiler=compiler, base_dir=base_dir)
    home = helper.home()
    run_deno_test_at_path(
        home,
        helper.project_path(),
        ctx.json_rpc_url,
        ctx.rest_api_url,
        home.get_test_key_path(),
        home.get_test_address(),
        helper.project_path() / INTEGRATION_DIR,
        deno_bin=deno_bin,
    )


@dataclass(frozen=True)
class Scenario:
    name: str
    run: Callable[..., None]


SCENARIOS = (
    Scenario("shuffle::sample-package-end-to-end", sample_package_end_to_end),
    Scenario("shuffle::typescript-sdk-integration", typescript_sdk_integration),
)


__all__ = [
    "ShuffleTestHelper",
    "bootstrap_shuffle",
    "sample_package_end_to_end",
    "typescript_sdk_integration",
    "Scenario",
    "SCENARIOS",
]
