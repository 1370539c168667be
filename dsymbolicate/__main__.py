from dsymbolicate.cli import main

main()
