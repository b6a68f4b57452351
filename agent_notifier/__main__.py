from agent_notifier.main import main

main()
