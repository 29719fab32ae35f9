from castor.cli import main

raise SystemExit(main())
