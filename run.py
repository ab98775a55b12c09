from wsl_monitor.agent import main

raise SystemExit(main())
