from flutter_scaffold.pipeline import cli

cli()
