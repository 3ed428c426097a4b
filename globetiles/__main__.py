from globetiles.cli import cli

cli()
