"""Run the treeq CLI with `python -m treeq`."""

from treeq import cli


if __name__ == "__main__":
    cli.main()
