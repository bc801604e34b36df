from opamextract.cli import main

main()
