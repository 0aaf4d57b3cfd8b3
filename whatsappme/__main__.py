from whatsappme.cli import main

main()
