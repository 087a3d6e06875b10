from nowplaying_client.launcher import main

raise SystemExit(main())
