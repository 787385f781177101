from semrel.cli.app import main

main()
