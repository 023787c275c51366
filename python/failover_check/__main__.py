from failover_check.cli import main

raise SystemExit(main())
