from mybckchk.main import main

main()
