from linksweep.interfaces.cli.cli import start

raise SystemExit(start())
