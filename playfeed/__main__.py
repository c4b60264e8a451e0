from playfeed.main import main

main()
