from balancing_dqn.main import main

raise SystemExit(main())
