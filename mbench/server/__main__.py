"""Run the mbench server: python -m mbench.server"""

import uvicorn

from mbench.log import configure_logging
from mbench.server.app import app

configure_logging()
uvicorn.run(app, host="0.0.0.0", port=8080)
