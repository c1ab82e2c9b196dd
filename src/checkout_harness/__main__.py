import argparse
import asyncio
import json
import sys
from typing import List

from playwright.async_api import async_playwright

from .core.config import HarnessConfig
from .main import CheckoutHarness, ScenarioOutcome
from .scenarios import DESCRIPTIONS, get_scenario, list_scenarios
from .utils.logger_config import setup_logger, log

logger = setup_logger('cli')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='python -m checkout_harness',
        description='Run end-to-end checkout scenarios against the automation exercise shop',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List the built-in scenarios
  python -m checkout_harness --list

  # Run two scenarios in a visible browser
  python -m checkout_harness login_valid add_same_product_twice --headed

  # Run everything against another deployment
  python -m checkout_harness --base-url http://localhost:8080
        """
    )
    parser.add_argument('scenarios', nargs='*', help='Scenario names; all scenarios when omitted')
    parser.add_argument('--list', action='store_true', help='List scenarios and exit')
    parser.add_argument('--headed', action='store_true', help='Show the browser window')
    parser.add_argument('--base-url', type=str, help='Shop base URL (overrides HARNESS_BASE_URL)')
    parser.add_argument('--json', action='store_true', help='Print outcomes as JSON')
    return parser


async def run(names: List[str], config: HarnessConfig) -> List[ScenarioOutcome]:
    """One fresh browser context per scenario so carts never leak between them"""
    outcomes = []
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=config.headless)
        try:
            for name in names:
                context = await browser.new_context()
                context.set_default_timeout(config.timeout_ms)
                context.set_default_navigation_timeout(config.navigation_timeout_ms)
                try:
                    page = await context.new_page()
                    harness = CheckoutHarness(page, config, name=name)
                    await harness.prepare()
                    outcomes.append(await harness.run_scenario(name))
                finally:
                    await context.close()
        finally:
            await browser.close()
    return outcomes


def print_outcomes(outcomes: List[ScenarioOutcome]):
    print("\n" + "=" * 60)
    for outcome in outcomes:
        mark = '✅ PASS' if outcome.passed else '❌ FAIL'
        print(f"{mark}  {outcome.name:<28} {outcome.duration:6.1f}s")
        if outcome.failure:
            print(f"        [{outcome.failure.kind.value}] {outcome.failure.message}")
        for warning in outcome.warnings:
            print(f"        ⚠️ {warning}")
    passed = sum(1 for outcome in outcomes if outcome.passed)
    print("=" * 60)
    print(f"{passed}/{len(outcomes)} scenario(s) passed\n")


async def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    if args.list:
        for name in list_scenarios():
            print(f"{name:<28} {DESCRIPTIONS[name]}")
        return 0

    names = args.scenarios or list_scenarios()
    for name in names:
        get_scenario(name)

    overrides = {}
    if args.headed:
        overrides['headless'] = False
    if args.base_url:
        overrides['base_url'] = args.base_url
    config = HarnessConfig.from_env(**overrides)

    log(logger, 'info', f"🚀 Running {len(names)} scenario(s) against {config.base_url}", 'CLI', 'RUN')
    outcomes = await run(names, config)

    if args.json:
        print(json.dumps([outcome.model_dump(mode='json') for outcome in outcomes], indent=2))
    else:
        print_outcomes(outcomes)
    return 0 if all(outcome.passed for outcome in outcomes) else 1


def entrypoint():
    if sys.platform == 'win32':
        asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())
    sys.exit(asyncio.run(main()))


if __name__ == '__main__':
    entrypoint()
