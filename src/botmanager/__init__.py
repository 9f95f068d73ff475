"""bot-manager: run a pool of bots as supervised child processes."""
