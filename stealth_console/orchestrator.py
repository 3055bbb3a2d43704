# stealth_console/orchestrator.py
"""Main loop: chain -> health check -> wallet -> session, until stopped."""
from typing import Dict, Optional

from .chain import ChainClient
from .config import ConfigError
from .context import SessionContext
from .dispatcher import TransactionDispatcher
from .models import RunStats
from .recipients import RecipientMode
from .rpc import ClientFactory, NoEndpointsLeft
from .scanner import RecipientPoolScanner
from .strategy import run_for_wallet
from .util import is_address, short


class SessionScheduler:
    def __init__(self, ctx: SessionContext, client_factory: Optional[ClientFactory] = None):
        self.ctx = ctx
        self.client_factory = client_factory or self._default_factory
        self.dispatcher = TransactionDispatcher(ctx)
        self._clients: Dict[str, ChainClient] = {}

    def _default_factory(self, url: str) -> ChainClient:
        return ChainClient.from_url(url, timeout=self.ctx.config.rpc_timeout)

    def client_for(self, url: str) -> ChainClient:
        # один клиент (и одна HTTP-сессия) на URL за весь запуск
        client = self._clients.get(url)
        if client is None:
            client = self._clients[url] = self.client_factory(url)
        return client

    async def close(self) -> None:
        clients, self._clients = list(self._clients.values()), {}
        for client in clients:
            try:
                await client.close()
            except Exception as e:
                self.ctx.journal.record(f"Failed to close RPC client {short(client.url, 16)}: {e}", "WARNING")

    def stop(self) -> None:
        if not self.ctx.stopped:
            self.ctx.journal.record("Stopping stealth mode after the current action...", "WARNING")
        self.ctx.request_stop()

    def preflight(self) -> None:
        """Hard errors raise ConfigError; recipient prerequisites only warn."""
        ctx = self.ctx
        ctx.config.validate()
        if not ctx.wallets:
            raise ConfigError("Please load at least one private key.")
        if ctx.registry.is_empty():
            raise ConfigError("Please add at least one valid RPC URL with Chain ID.")
        mode = RecipientMode(ctx.config.recipient_mode)
        warn = lambda msg: ctx.journal.record(msg, "WARNING")
        if mode is RecipientMode.FIXED and not is_address(ctx.config.fixed_address.strip()):
            warn("Fixed recipient address is invalid; every send will be skipped.")
        elif mode is RecipientMode.LIST and not ctx.manual_list:
            warn("Recipient list is empty; every send will be skipped.")
        elif mode is RecipientMode.PREDEFINED and not ctx.predefined_list:
            warn("Predefined recipient list is empty; every send will be skipped.")
        elif mode in (RecipientMode.SELF_INTERACT, RecipientMode.POOL) and len(ctx.wallets) < 2:
            warn("Self-interaction needs at least two loaded wallets.")

    async def prescan(self) -> int:
        """Fill recipient pools from the first responsive endpoint of each chain."""
        ctx = self.ctx
        scanner = RecipientPoolScanner(ctx.pools, ctx.journal)
        found = 0
        for chain_id in ctx.registry.chain_ids():
            if ctx.stopped:
                break
            client = None
            for ep in ctx.registry.endpoints(chain_id):
                candidate = self.client_for(ep.url)
                try:
                    await candidate.block_number()
                except Exception as e:
                    ctx.journal.record(f"RPC {short(ep.url, 16)} unavailable for scan: {e}. Trying next.",
                                       "WARNING", chain_id=chain_id)
                    continue
                client = candidate
                break
            if client is None:
                ctx.journal.record(f"No working RPC to scan Chain ID {chain_id}. Pool stays as is.",
                                   "WARNING", chain_id=chain_id)
                continue
            found += await scanner.scan(client, chain_id, ctx.config.block_lookback)
        return found

    async def run(self) -> RunStats:
        ctx = self.ctx
        # сброс до проверок, чтобы их предупреждения остались в журнале
        ctx.reset_run()
        self.preflight()
        ctx.journal.record(f"Stealth mode started with {len(ctx.wallets)} wallet(s) on "
                           f"{len(ctx.registry)} chain(s).", "SUCCESS")
        try:
            if ctx.config.recipient_mode == RecipientMode.POOL.value:
                ctx.journal.record("Starting pre-scan for recipient pool...", "INFO")
                await self.prescan()
                ctx.journal.record("Recipient pool pre-scan complete.", "SUCCESS")
            while not ctx.stopped:
                await self.run_once()
        except NoEndpointsLeft as e:
            ctx.journal.record(f"{e} Stopping stealth mode.", "ERROR")
            raise
        finally:
            await self.close()
        ctx.journal.record("Stealth mode stopped.", "INFO")
        return ctx.stats

    async def run_once(self) -> None:
        """One pass through the state machine: pick chain, health check, pick wallet, run session."""
        ctx = self.ctx
        cfg = ctx.config
        registry = ctx.registry

        chain_id = registry.pick_chain(ctx.rng, ctx.last_chain_id, cfg.chain_stickiness_chance)
        if ctx.last_chain_id is not None and chain_id != ctx.last_chain_id:
            ctx.journal.record(f"Switching to Chain ID {chain_id}. Waiting {cfg.rpc_switch_delay:g}s...", "INFO",
                               chain_id=chain_id, delay_s=cfg.rpc_switch_delay)
            await ctx.sleep(cfg.rpc_switch_delay)
            if ctx.stopped:
                return
        ctx.last_chain_id = chain_id

        ep, client, problems = await registry.health_check(chain_id, self.client_for)
        for msg in problems:
            ctx.journal.record(msg, "WARNING", chain_id=chain_id)
        if client is None:
            ctx.last_chain_id = None
            if registry.is_empty():
                raise NoEndpointsLeft("All RPCs failed and no other chains are available.")
            return
        ctx.journal.record(f"Health check passed for {short(ep.url, 16)} on Chain ID {chain_id}.", "INFO",
                           chain_id=chain_id)

        if not ctx.wallets:
            raise ConfigError("No wallets loaded.")
        wallet = ctx.rng.choice(ctx.wallets)
        if ctx.last_wallet is not None and wallet.address != ctx.last_wallet:
            ctx.journal.record(f"Switching to Wallet {short(wallet.address)}. Waiting {cfg.wallet_switch_delay:g}s...",
                               "INFO", chain_id=chain_id, wallet=wallet, delay_s=cfg.wallet_switch_delay)
            await ctx.sleep(cfg.wallet_switch_delay)
            if ctx.stopped:
                return
        ctx.last_wallet = wallet.address

        await run_for_wallet(ctx, client, chain_id, wallet, self.dispatcher)
