# abemadl/__main__.py
import sys
from .cli import app


def cli(argv=None):
    """
    Minimal launcher so you can run:
      - python3 -m abemadl crawl [args]
      - python3 -m abemadl add URL
    """
    if argv is None:
        argv = sys.argv[1:]
    return app(args=argv, prog_name="abemadl")


if __name__ == "__main__":
    sys.exit(cli())
