from verifynews_cli.commands import main

main()
