from procshell.cli import main

raise SystemExit(main())
