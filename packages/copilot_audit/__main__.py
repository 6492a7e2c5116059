from .cli import app

app(prog_name="copilot-audit")
