import hive_tcli
import os
import logging


logger = logging.getLogger("hive_tcli")
logger.setLevel(logging.DEBUG)
fh = logging.FileHandler("hivetcli.log")
fh.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(process)d %(thread)d %(message)s"))
fh.setLevel(logging.DEBUG)
logger.addHandler(fh)

# Full request and response bodies are only logged here
unsafe_logger = logging.getLogger("hive_tcli.unsafe")
unsafe_logger.addHandler(fh)

with hive_tcli.connect(
    os.getenv("HIVE_HOST", "localhost"),
    int(os.getenv("HIVE_PORT", "10000")),
    transport="http",
    http_path="cliservice",
    sasl_params={
        "username": os.getenv("HIVE_USER"),
        "password": os.getenv("HIVE_PASSWORD"),
    },
) as connection:

    print("executing query: SELECT * FROM default.sample_07")
    try:
        connection.fetch_in_batch(
            "SELECT * FROM default.sample_07",
            batch_size=1000,
            on_batch=lambda batch: print(f"rows: {len(batch)}"),
        )
    except hive_tcli.HiveServerError as e:
        print(f"error: {e.message_with_context()}")
