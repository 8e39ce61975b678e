from algloop.cli.main import main

main()
