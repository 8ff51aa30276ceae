from .qr_codes import (  # noqa: F401
    as_utc,
    create_csv_qr_codes,
    create_qr_code,
    delete_qr_code,
    get_qr_code,
    list_qr_codes,
    record_scan,
)
