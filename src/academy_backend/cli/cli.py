import click

from .security import apply_policies, init_db, issue_token, seed

@click.group()
def cli():
    pass

cli.add_command(init_db,"init-db")
cli.add_command(seed,"seed-roles")
cli.add_command(apply_policies,"apply-rank-policies")
cli.add_command(issue_token,"issue-token")

if __name__ == '__main__':
    cli()
