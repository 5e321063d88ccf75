import hive_tcli
import os
import time

with hive_tcli.connect(
    os.getenv("HIVE_HOST", "localhost"),
    int(os.getenv("HIVE_PORT", "10000")),
    transport="sasl",
    hive_version=13,
    sasl_params={"username": os.getenv("HIVE_USER", "hive")},
) as connection:

    long_running_query = """
        SELECT COUNT(*) FROM default.sample_07 a
        JOIN default.sample_08 b ON a.code = b.code
    """

    # Non-blocking call, the handles are plain values that can be stored
    handles = connection.async_execute(long_running_query)

    # Polling every 5 seconds until the query is no longer running
    while not connection.async_state(handles).is_terminal:
        print("POLLING")
        time.sleep(5)

    if connection.async_is_complete(handles):
        for row in connection.async_fetch(handles):
            print(row)
    else:
        print("Query ended in state {}".format(connection.async_state(handles).value))

    connection.async_close_operation(handles)
