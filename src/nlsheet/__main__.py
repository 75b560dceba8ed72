from nlsheet.cli import main

main()
