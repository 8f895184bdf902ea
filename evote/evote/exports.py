"""
CSV export helpers.

Exports are produced from querysets the caller has already filtered, so the
downloaded file matches what the list endpoint returns.
"""
import csv
import logging

from django.http import HttpResponse

logger = logging.getLogger("activity")


def csv_response(filename, header, rows):
    """
    Build a `text/csv` attachment response.

    Args:
        filename: name offered to the browser, e.g. "voters.csv"
        header: sequence of column titles
        rows: iterable of sequences, one per record
    """
    response = HttpResponse(content_type="text/csv")
    response["Content-Disposition"] = f'attachment; filename="{filename}"'

    writer = csv.writer(response)
    writer.writerow(header)
    count = 0
    for row in rows:
        writer.writerow(["" if value is None else value for value in row])
        count += 1

    logger.info("CSV export %s generated with %d rows", filename, count)
    return response
