from stocktycoon.cli import main

main()
