from rich.pretty import pprint

from cordage import *

remote = (
    CommandBuilder("remote", descr="manage tracked repositories")
    .option("-v", "--verbose", type=bool)
    .positional("<name>", arity="0..1", required=False)
    .build()
)

git = (
    CommandBuilder("git")
    .option("--git-dir", label="<dir>")
    .option("-c", "--config", type=dict[str, str])
    .option("-h", "--help", type=bool, help=True)
    .subcommand(remote)
    .build()
)


if __name__ == '__main__':
    pprint(invoke(git))
