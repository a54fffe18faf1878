from bridge_cli.bootstrap import main

raise SystemExit(main())
