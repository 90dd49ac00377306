"""CLI entry point for the weather dashboard."""

import argparse
import asyncio
import json
import logging
import signal

from weatherdash.config.loader import (
    get_config_value,
    load_config,
    mask_secrets,
    set_config_value,
)
from weatherdash.config.schema import DashboardConfig
from weatherdash.dashboard.refresh_controller import RefreshController
from weatherdash.dashboard.store import DashboardState, WeatherStore
from weatherdash.dashboard.visibility import VisibilityMonitor
from weatherdash.ingest.errors import GeocodingError, UpstreamError
from weatherdash.pipeline.dashboard_pipeline import DashboardPipeline
from weatherdash.reporting.formatters import (
    format_dashboard_text,
    format_package_json,
    format_package_text,
)
from weatherdash.reporting.health_checker import HealthChecker

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = "ops/configs/weatherdash.yaml"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="weatherdash",
        description="NWS weather dashboard",
    )
    parser.add_argument(
        "--config", default=DEFAULT_CONFIG, help="Config YAML path"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Debug logging"
    )

    sub = parser.add_subparsers(dest="command")

    # weather
    weather_p = sub.add_parser("weather", help="Fetch weather for a ZIP code once")
    weather_p.add_argument("zip_code")
    weather_p.add_argument("--json", action="store_true", help="Emit JSON")
    weather_p.add_argument(
        "--refresh", action="store_true", help="Bypass cached data"
    )

    # watch
    watch_p = sub.add_parser(
        "watch",
        help="Live dashboard with background refresh "
        "(SIGUSR1 hide, SIGUSR2 show, SIGHUP manual refresh)",
    )
    watch_p.add_argument("zip_code")
    watch_p.add_argument(
        "--interval", type=float, default=None, help="Refresh interval seconds"
    )
    watch_p.add_argument(
        "--duration", type=float, default=None, help="Exit after N seconds"
    )

    # health
    sub.add_parser("health", help="Check upstream APIs and caches")

    # serve
    serve_p = sub.add_parser(
        "serve", help="Run the HTTP API with background cache prefetch"
    )
    serve_p.add_argument("--host", default="127.0.0.1")
    serve_p.add_argument("--port", type=int, default=8777)

    # config show / get / set
    config_p = sub.add_parser("config", help="Config operations")
    config_sub = config_p.add_subparsers(dest="config_command")
    config_sub.add_parser("show", help="Display current config")
    get_p = config_sub.add_parser("get", help="Get a config value")
    get_p.add_argument("key", help="Dotted key, e.g. refresh.interval_seconds")
    set_p = config_sub.add_parser("set", help="Validate a config change")
    set_p.add_argument("keyvalue", help="key=value to set")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)

    if args.command == "weather":
        return asyncio.run(_cmd_weather(config, args))
    elif args.command == "watch":
        return asyncio.run(_cmd_watch(config, args))
    elif args.command == "health":
        return asyncio.run(_cmd_health(config))
    elif args.command == "serve":
        return _cmd_serve(config, args)
    elif args.command == "config":
        return _cmd_config(config, args)
    else:
        parser.print_help()
        return 1


async def _cmd_weather(config: DashboardConfig, args) -> int:
    pipeline = DashboardPipeline.from_config(config)
    try:
        if args.refresh:
            package = await pipeline.refresh_weather(args.zip_code)
        else:
            package = await pipeline.get_weather_by_zip(args.zip_code)
    except (GeocodingError, UpstreamError) as e:
        print(f"Error: {e}")
        return 1
    finally:
        await pipeline.aclose()

    if args.json:
        print(format_package_json(package))
    else:
        print(format_package_text(package))
    return 0


async def _cmd_watch(config: DashboardConfig, args) -> int:
    refresh_config = config.refresh
    if args.interval is not None:
        refresh_config = refresh_config.model_copy(
            update={"interval_seconds": args.interval}
        )

    pipeline = DashboardPipeline.from_config(config)
    store = WeatherStore(max_recent=refresh_config.max_recent_zip_codes)
    visibility = VisibilityMonitor()
    controller = RefreshController(
        store,
        fetch_weather=pipeline.get_weather_by_zip,
        refresh_weather=pipeline.refresh_weather,
        visibility=visibility,
        config=refresh_config,
    )

    last_frame: list[str] = [""]

    def render(state: DashboardState) -> None:
        frame = format_dashboard_text(state)
        if frame and frame != last_frame[0]:
            last_frame[0] = frame
            print(frame + "\n", flush=True)

    unsubscribe = store.subscribe(render)
    stop = asyncio.Event()
    manual_tasks: set[asyncio.Task] = set()

    def manual_refresh() -> None:
        task = asyncio.get_running_loop().create_task(controller.refresh_weather())
        manual_tasks.add(task)
        task.add_done_callback(manual_tasks.discard)

    loop = asyncio.get_running_loop()
    loop.add_signal_handler(signal.SIGINT, stop.set)
    loop.add_signal_handler(signal.SIGTERM, stop.set)
    loop.add_signal_handler(signal.SIGUSR1, visibility.hide)
    loop.add_signal_handler(signal.SIGUSR2, visibility.show)
    loop.add_signal_handler(signal.SIGHUP, manual_refresh)

    controller.start()
    try:
        if not await controller.fetch_weather(args.zip_code):
            return 1
        logger.info(
            "Watching %s, refreshing every %.0fs",
            args.zip_code, refresh_config.interval_seconds,
        )
        try:
            await asyncio.wait_for(stop.wait(), timeout=args.duration)
        except TimeoutError:
            pass
        return 0
    finally:
        controller.close()
        unsubscribe()
        for task in manual_tasks:
            task.cancel()
        for sig in (signal.SIGINT, signal.SIGTERM, signal.SIGUSR1, signal.SIGUSR2, signal.SIGHUP):
            loop.remove_signal_handler(sig)
        await pipeline.aclose()


async def _cmd_health(config: DashboardConfig) -> int:
    pipeline = DashboardPipeline.from_config(config)
    try:
        status = await HealthChecker(config, pipeline.nws, pipeline.uv).check()
    finally:
        await pipeline.aclose()

    print(f"NWS API: {'OK' if status.nws_api_reachable else 'FAIL'}")
    if status.uv_api_reachable is None:
        print("UV API: disabled (no API key)")
    else:
        print(f"UV API: {'OK' if status.uv_api_reachable else 'FAIL'}")
    print(
        f"NWS cache: {status.nws_cache.keys} keys, "
        f"{status.nws_cache.hits} hits, {status.nws_cache.misses} misses"
    )
    print(f"Checked: {status.checked_at}")
    return 0 if status.ok else 1


def _cmd_serve(config: DashboardConfig, args) -> int:
    import uvicorn

    from weatherdash.server import create_app

    uvicorn.run(create_app(config), host=args.host, port=args.port)
    return 0


def _cmd_config(config: DashboardConfig, args) -> int:
    if args.config_command == "show":
        print(json.dumps(mask_secrets(config), indent=2))
        return 0
    elif args.config_command == "get":
        try:
            print(get_config_value(config, args.key))
            return 0
        except KeyError as e:
            print(f"Error: {e}")
            return 1
    elif args.config_command == "set":
        kv = args.keyvalue
        if "=" not in kv:
            print("Error: use key=value format")
            return 1
        key, value = kv.split("=", 1)
        try:
            new_config = set_config_value(config, key.strip(), value.strip())
            print(f"Set {key} = {get_config_value(new_config, key.strip())}")
            return 0
        except Exception as e:
            print(f"Error: {e}")
            return 1
    else:
        print("Use: config show | config get key | config set key=value")
        return 1
