"""
Miner wallet — create or reuse the Solana keypair and keep a recovery copy.

The keypair file is never overwritten once it exists. The base58
secret is written to a plain-text recovery file, created with mode
0600 before the secret is written. That file is the operator's
durable backup and is deliberately left behind by removal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from provisioner.adapters.shell.command import CommandRunner, run_command
from provisioner.core.persistence.files import write_private_file

logger = logging.getLogger(__name__)

KEYPAIR_FILE = Path(".config/solana/id.json")
RECOVERY_FILE = Path("private-key.txt")


class WalletError(Exception):
    """The wallet CLI failed."""


@dataclass
class WalletInfo:
    address: str
    keypair_path: Path
    recovery_path: Path | None
    created: bool
    balance: str = "0 SOL"

    @property
    def funded(self) -> bool:
        return not is_zero_balance(self.balance)


def is_zero_balance(balance: str) -> bool:
    """``0 SOL`` / ``0.000000000 SOL`` / unparsable → True."""
    amount = balance.strip().split(" ", 1)[0]
    try:
        return float(amount) == 0.0
    except ValueError:
        return True


def parse_secret(output: str) -> str | None:
    for line in output.splitlines():
        if line.strip().startswith("Secret:"):
            parts = line.split()
            if len(parts) >= 2:
                return parts[1]
    return None


def ensure_wallet(
    home: Path,
    *,
    runner: CommandRunner = run_command,
    env: dict[str, str] | None = None,
) -> WalletInfo:
    """Create the keypair if missing, then read its address, secret, and balance.

    Raises:
        WalletError: If keypair creation or address lookup fails.
    """
    keypair = home / KEYPAIR_FILE
    created = False

    if not keypair.is_file():
        logger.info("Creating wallet at %s", keypair)
        keypair.parent.mkdir(parents=True, exist_ok=True)
        r = runner(
            ["solana-keygen", "new", "--no-bip39-passphrase", "--force", "-o", str(keypair)],
            env_overrides=env, adapter="wallet", operation="keygen",
        )
        if r.failed:
            raise WalletError(f"solana-keygen new failed: {r.error}")
        created = True

    r = runner(["solana", "address", "-k", str(keypair)], env_overrides=env, adapter="wallet", operation="address")
    if r.failed or not r.output:
        raise WalletError(f"cannot read wallet address: {r.error or 'empty output'}")
    address = r.output.strip().splitlines()[-1]

    recovery: Path | None = None
    r = runner(
        ["solana-keygen", "pubkey", str(keypair), "--with-secret-key"],
        env_overrides=env, adapter="wallet", operation="export",
    )
    secret = parse_secret(r.output) if r.ok else None
    if secret:
        recovery = home / RECOVERY_FILE
        write_private_file(recovery, secret + "\n")
    else:
        logger.warning("Secret key export unavailable; %s is the only backup", keypair)

    r = runner(["solana", "balance", "-k", str(keypair)], env_overrides=env, adapter="wallet", operation="balance")
    balance = r.output.strip() if r.ok and r.output.strip() else "0 SOL"

    return WalletInfo(
        address=address,
        keypair_path=keypair,
        recovery_path=recovery,
        created=created,
        balance=balance,
    )
