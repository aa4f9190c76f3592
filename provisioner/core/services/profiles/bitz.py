"""Bitz miner on Eclipse, kept alive in a detached screen session."""

from __future__ import annotations

import logging
import os

import yaml

from provisioner.adapters.base import RuntimeEngine
from provisioner.adapters.process.screen import ScreenEngine
from provisioner.adapters.shell.command import CommandRunner, extend_path, run_command
from provisioner.core.models.capability import HostCapability
from provisioner.core.models.deployment import DeploymentConfig, DeploymentDescriptor
from provisioner.core.models.tooling import InstallStep, ToolSpec
from provisioner.core.services.collector import CollectionPlan, ResourcePrompt
from provisioner.core.services.interaction import Prompter
from provisioner.core.services.profiles.base import ServiceProfile
from provisioner.core.services.wallet import WalletError, ensure_wallet

logger = logging.getLogger(__name__)

ECLIPSE_RPC_URL = "https://mainnetbeta-rpc.eclipse.xyz/"
RUSTUP_INSTALL = "curl --proto '=https' --tlsv1.2 -sSf https://sh.rustup.rs | sh -s -- -y"
SOLANA_INSTALL = 'sh -c "$(curl -sSfL https://release.anza.xyz/stable/install)"'
SOLANA_BIN = ".local/share/solana/install/active_release/bin"
CARGO_BIN = ".cargo/bin"

_BASHRC_SOLANA = (
    f"grep -qs '{SOLANA_BIN}' ~/.bashrc"
    f" || echo 'export PATH=\"$HOME/{SOLANA_BIN}:$PATH\"' >> ~/.bashrc"
)


class BitzProfile(ServiceProfile):
    name = "bitz"
    title = "Bitz Miner"
    unit = "bitz"
    descriptor_filename = "bitz-unit.yaml"
    aux_label = "Show Bitz commands"

    @property
    def tool_dirs(self) -> list[str]:
        home = self.settings.home
        return [str(home / CARGO_BIN), str(home / SOLANA_BIN)]

    def baseline(self) -> list[ToolSpec]:
        cargo_bin, solana_bin = self.tool_dirs
        return [
            ToolSpec(
                name="utilities",
                label="screen, curl, nano, jq",
                packages=["screen", "curl", "nano", "jq"],
                steps=[
                    InstallStep(kind="refresh"),
                    InstallStep(kind="packages", packages=["screen", "curl", "nano", "jq"]),
                ],
            ),
            ToolSpec(
                name="rust",
                label="Rust toolchain",
                binary="cargo",
                extra_path=[cargo_bin],
                version_command=["cargo", "--version"],
                steps=[
                    InstallStep(
                        kind="packages",
                        label="build essentials",
                        packages=["build-essential", "pkg-config", "libssl-dev"],
                    ),
                    InstallStep(
                        kind="command",
                        label="rustup",
                        commands=[["bash", "-c", RUSTUP_INSTALL]],
                        timeout=900,
                    ),
                ],
            ),
            ToolSpec(
                name="solana",
                label="Solana CLI",
                binary="solana",
                extra_path=[solana_bin],
                version_command=["solana", "--version"],
                steps=[
                    InstallStep(
                        kind="command",
                        label="Solana installer",
                        commands=[["bash", "-c", SOLANA_INSTALL], ["bash", "-c", _BASHRC_SOLANA]],
                        timeout=900,
                    ),
                ],
            ),
            ToolSpec(
                name="bitz",
                label="Bitz CLI",
                binary="bitz",
                extra_path=[cargo_bin],
                version_command=["bitz", "--version"],
                steps=[
                    InstallStep(
                        kind="command",
                        label="cargo install bitz",
                        commands=[["cargo", "install", "bitz"]],
                        timeout=1800,
                    ),
                ],
            ),
        ]

    def _env(self) -> dict[str, str]:
        return {"PATH": extend_path(self.tool_dirs)}

    def prepare(self, prompter: Prompter, runner: CommandRunner = run_command) -> dict[str, str]:
        """Point the Solana CLI at Eclipse and make sure a funded wallet exists.

        Raises:
            WalletError: If the wallet cannot be created or read.
        """
        env = self._env()
        r = runner(
            ["solana", "config", "set", "--url", ECLIPSE_RPC_URL],
            env_overrides=env, adapter="wallet", operation="config",
        )
        if r.failed:
            raise WalletError(f"cannot set Solana RPC URL: {r.error}")

        wallet = ensure_wallet(self.settings.home, runner=runner, env=env)
        logger.info("Wallet %s ready (created=%s, balance=%s)", wallet.address, wallet.created, wallet.balance)
        prompter.info(f"Wallet address: {wallet.address}")
        prompter.info(f"Keypair: {wallet.keypair_path}")
        if wallet.recovery_path is not None:
            prompter.warn(f"Back up your private key now: {wallet.recovery_path}")
        prompter.info(f"Balance: {wallet.balance}")

        if not wallet.funded:
            prompter.warn("The wallet has no ETH on Eclipse yet; the miner needs some for fees.")
            prompter.pause(f"Fund {wallet.address}, then press Enter to continue")

        return {"wallet": wallet.address}

    def collection_plan(self) -> CollectionPlan:
        cpus = os.cpu_count() or 1
        return CollectionPlan(
            profile=self.name,
            resources=[
                ResourcePrompt(
                    key="cores",
                    text=f"CPU cores to mine with (1-{cpus})",
                    default="1",
                    kind="int",
                    low=1,
                    high=cpus,
                ),
            ],
        )

    def render(self, cfg: DeploymentConfig) -> DeploymentDescriptor:
        cores = cfg.resource_hints.get("cores", "1")
        unit = {
            "unit": self.unit,
            "command": ["bitz", "collect", "--cores", cores],
            "working_dir": str(self.workdir),
            "path_prepend": self.tool_dirs,
            "restart": "unless-stopped",
        }
        content = yaml.safe_dump(unit, sort_keys=False, default_flow_style=False)
        return DeploymentDescriptor(filename=self.descriptor_filename, content=content)

    def engine(self) -> RuntimeEngine:
        return ScreenEngine()

    def access_info(self, cfg: DeploymentConfig, caps: HostCapability) -> list[str]:
        lines = [f"Bitz is mining with {cfg.resource_hints.get('cores', '1')} core(s)."]
        if "wallet" in cfg.resource_hints:
            lines.append(f"Wallet: {cfg.resource_hints['wallet']}")
        lines.append(f"Attach:  screen -r {self.unit}   (detach with Ctrl+A then D)")
        lines.append(f"Stop:    screen -S {self.unit} -X quit")
        return lines

    def management_commands(self) -> list[tuple[str, str]]:
        return [
            ("bitz account", "account and pending rewards"),
            ("bitz claim", "claim mined BITZ to the wallet"),
            ("bitz -h", "all miner commands"),
            (f"screen -r {self.unit}", "attach to the miner session"),
        ]

    @property
    def removal_warning(self) -> str:
        return "This will stop the miner and uninstall the Bitz CLI. The wallet and its backup remain."

    @property
    def logs_hint(self) -> str:
        return f"Attach to the session to see miner output: screen -r {self.unit}"

    def teardown_commands(self) -> list[list[str]]:
        return [["cargo", "uninstall", "bitz"]]

    def teardown_env(self) -> dict[str, str] | None:
        return self._env()
