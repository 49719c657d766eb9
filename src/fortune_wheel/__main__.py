from fortune_wheel.main import main

main()
