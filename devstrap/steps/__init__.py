"""
Step programs — one standalone, re-runnable installer per module.

Each module is executable as a script (the orchestrator runs them that
way) and exposes ``main(argv) -> int``.
"""
