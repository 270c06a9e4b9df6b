import logging

import uvicorn
from fitplan.api.api_run import app
from fitplan.utilities.config import APP_HOST, APP_PORT, DEBUG
from fitplan.utilities.network import server_urls


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.DEBUG if DEBUG else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    local_url, *other_urls = server_urls(APP_HOST, APP_PORT)
    print(f"FitPlan API running on {local_url} (Press CTRL+C to quit)")
    for url in other_urls:
        print(f"Accessible from other devices at: {url}")
    uvicorn.run(app, host=APP_HOST, port=APP_PORT)
