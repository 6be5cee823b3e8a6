from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from custody.adapters.ledger import InMemoryLedger
from custody.adapters.oracle import HttpPriceOracle, StaticPriceOracle
from custody.wallet.errors import InvalidWalletConfig
from custody.wallet.interfaces import Ledger, PriceOracle
from custody.wallet.notifications import EventBus
from custody.wallet.wallet import DualControlWallet


def _split_csv(raw: Optional[str]) -> List[str]:
    if raw is None:
        return []
    return [p.strip() for p in str(raw).split(",") if p.strip()]


class CustodySettings(BaseSettings):
    """
    Runtime configuration (env prefix CUSTODY_, optional .env file).

    Notes:
    - List-valued settings are comma-separated strings (CUSTODY_DIRECTORS=alice,bob).
    - Wallet invariants (distinct directors, 1-2 targets, ...) are enforced when
      the wallet is built, not here, so every violation is reported at once.
    """

    model_config = SettingsConfigDict(
        env_prefix="CUSTODY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Service identity
    SERVICE_NAME: str = "custody-wallet"
    ENV: str = "local"
    LOG_LEVEL: str = "INFO"

    # HTTP
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # Initial wallet parameters
    DIRECTORS: str = ""
    WALLET_NAME: str = ""
    PAYOUT_TARGETS: str = ""
    THRESHOLD_VALUE: int = 0
    ASSET: str = "native"

    # Price oracle: HTTP endpoint wins over a static rate when both are set.
    ORACLE_URL: Optional[str] = None
    ORACLE_TIMEOUT_S: float = Field(default=10.0, gt=0)
    ORACLE_PRICE: Optional[int] = None
    ORACLE_DECIMALS: int = Field(default=8, ge=0)

    @property
    def directors(self) -> List[str]:
        return _split_csv(self.DIRECTORS)

    @property
    def payout_targets(self) -> List[str]:
        return _split_csv(self.PAYOUT_TARGETS)


@lru_cache(maxsize=1)
def get_settings() -> CustodySettings:
    return CustodySettings()


def build_oracle(settings: CustodySettings) -> PriceOracle:
    url = (settings.ORACLE_URL or "").strip()
    if url:
        return HttpPriceOracle(url=url, timeout_s=settings.ORACLE_TIMEOUT_S)
    if settings.ORACLE_PRICE is not None:
        return StaticPriceOracle(price=settings.ORACLE_PRICE, decimals=settings.ORACLE_DECIMALS)
    raise InvalidWalletConfig(["no price oracle configured (set CUSTODY_ORACLE_URL or CUSTODY_ORACLE_PRICE)"])


def build_wallet(
    settings: CustodySettings,
    *,
    ledger: Optional[Ledger] = None,
    oracle: Optional[PriceOracle] = None,
    events: Optional[EventBus] = None,
) -> DualControlWallet:
    asset = settings.ASSET.strip()
    if not asset:
        raise InvalidWalletConfig(["asset is required"])
    return DualControlWallet(
        directors=settings.directors,
        display_name=settings.WALLET_NAME,
        payout_targets=settings.payout_targets,
        threshold_value=settings.THRESHOLD_VALUE,
        ledger=ledger if ledger is not None else InMemoryLedger(),
        oracle=oracle if oracle is not None else build_oracle(settings),
        asset=asset,
        events=events,
    )
