import click
from dotenv import load_dotenv

# Settings are read on import, so the environment file must be loaded first
load_dotenv()

from .permissions import bootstrap, migrate, resolve

@click.group()
def cli():
    pass

cli.add_command(bootstrap,"bootstrap")
cli.add_command(migrate,"migrate")
cli.add_command(resolve,"resolve")

if __name__ == '__main__':
    cli()
