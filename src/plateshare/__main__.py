from plateshare.cli import main

main()
