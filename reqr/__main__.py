from reqr.cli import main

main()
