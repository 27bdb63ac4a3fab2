from wsmc.process_trace.export import (
    generations_to_dataframe,
    trace_to_dataframe,
    weighted_posterior_mean,
    write_generations_table,
)
