from notibot.main import main

main()
