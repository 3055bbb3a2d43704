# stealth_console/main.py
import asyncio
import signal

from .config import ConfigError, RunConfig, _env, _env_bool, _env_csv, parse_rpc_urls
from .context import SessionContext
from .orchestrator import SessionScheduler
from .rpc import EndpointRegistry, NoEndpointsLeft
from .randomness import Randomness
from .util import get_logger, on_error
from .wallets import load_address_file, load_wallets

log = get_logger()


async def build_context(config: RunConfig) -> SessionContext:
    rng = Randomness()
    registry = EndpointRegistry(parse_rpc_urls(config.rpc_urls, log), max_failures=config.rpc_max_failures)
    wallets = await load_wallets(_env_csv("PRIVATE_KEYS"), config, rng)
    ctx = SessionContext(config=config, registry=registry, wallets=wallets, rng=rng)
    if _env("RECIPIENT_LIST_FILE"):
        ctx.manual_list, _ = load_address_file(_env("RECIPIENT_LIST_FILE"))
    if _env("PREDEFINED_LIST_FILE"):
        ctx.predefined_list, _ = load_address_file(_env("PREDEFINED_LIST_FILE"))
    return ctx


async def amain() -> int:
    try:
        config = RunConfig.from_env()
        config.validate()
    except (ConfigError, ValueError) as e:
        on_error(log, "Config error", e)
        return 2
    ctx = await build_context(config)
    scheduler = SessionScheduler(ctx)

    if _env_bool("PROBE_RPCS", False):
        results = await ctx.registry.probe_all(scheduler.client_for)
        ok = sum(1 for r in results if r.ok and not r.chain_mismatch)
        log.info(f"RPC probe: {ok}/{len(results)} endpoints healthy")

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, scheduler.stop)
    except NotImplementedError:
        # windows: Ctrl-C прилетит как KeyboardInterrupt
        pass

    code = 0
    try:
        stats = await scheduler.run()
    except ConfigError as e:
        on_error(log, "Cannot start", e)
        return 2
    except NoEndpointsLeft as e:
        on_error(log, "Run halted", e)
        stats, code = ctx.stats, 1
    finally:
        # клиенты после PROBE_RPCS, если run упал на проверках
        await scheduler.close()
    log.info(f"Summary: {stats.as_dict()}")
    log.info(f"Log: {ctx.journal.summary()}")

    csv_path, json_path = _env("LOG_EXPORT_CSV"), _env("LOG_EXPORT_JSON")
    if csv_path:
        n = ctx.journal.export_csv(csv_path)
        log.info(f"Exported {n} log entries to {csv_path}")
    if json_path:
        n = ctx.journal.export_json(json_path)
        log.info(f"Exported {n} log entries to {json_path}")
    return code


def main() -> int:
    try:
        return asyncio.run(amain())
    except KeyboardInterrupt:
        log.warning("Interrupted")
        return 130
