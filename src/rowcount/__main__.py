from rowcount.ui.cli import main

raise SystemExit(main())
