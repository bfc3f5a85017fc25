from pckgs.publisher import cli

cli.cli()
