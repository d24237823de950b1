from hsctl.app import main

main()
