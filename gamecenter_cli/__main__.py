from gamecenter_cli.cli import main

main()
