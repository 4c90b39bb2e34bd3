import asyncio

from docrag.mcp_server.server import main

asyncio.run(main())
