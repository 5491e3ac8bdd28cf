# ABOUTME: Click subcommands for the bookhub CLI.
# ABOUTME: Each module defines one command or command group registered in bookhub.cli.
