#!/usr/bin/python3

from sparkblox_deployment.cli import deploy as cli

if __name__ == "__main__":
    cli()
