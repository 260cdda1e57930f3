from addon_smoke.cli import run

run()
