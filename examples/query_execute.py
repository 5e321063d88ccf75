import hive_tcli
import os

with hive_tcli.connect(
    os.getenv("HIVE_HOST", "localhost"),
    int(os.getenv("HIVE_PORT", "10000")),
    transport=os.getenv("HIVE_TRANSPORT", "buffered"),
    hive_version=os.getenv("HIVE_VERSION", "13"),
) as connection:

    result = connection.fetch("SELECT * FROM default.sample_07 LIMIT 10")

    print(result.column_names)
    for row in result:
        print(row)

    # Larger results are pulled page by page
    connection.fetch_in_batch(
        "SELECT * FROM default.sample_07",
        batch_size=500,
        on_batch=lambda batch: print("Got {} rows".format(len(batch))),
    )
