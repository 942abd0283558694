from site_loader.cli import cli

cli(prog_name="site-loader")
