from ocalc.cli import main

main()
