# PATH: strategy/jobs/__init__.py
"""
Strategy jobs package.

Entry points:
    python run_bot.py                      # CLI wiring config, venues and the loop
    from strategy.jobs.run_arb import arb_loop, run_cycle

This __init__.py intentionally does NOT import run_arb, so importing the
package never installs signal handlers or touches module state.
"""

__all__: list[str] = []
