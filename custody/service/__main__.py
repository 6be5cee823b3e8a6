from custody.service.app import main

main()
