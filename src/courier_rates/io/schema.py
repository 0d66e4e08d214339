# src/courier_rates/io/schema.py
from __future__ import annotations


# Batch input columns (header text in the first sheet of the workbook)
COL_REFERENCE = "Reference"
COL_ORIGIN = "Origin Pincode"
COL_DESTINATION = "Destination Pincode"
COL_WEIGHT = "Weight (kg)"
COL_LENGTH = "Length (cm)"
COL_WIDTH = "Width (cm)"
COL_HEIGHT = "Height (cm)"
COL_PAYMENT = "Payment Type"
COL_DECLARED = "Declared Value"
COL_PIECES = "Pieces"
COL_BILLING = "Billing Mode"
COL_STATUS = "Shipment Status"

REQUIRED_INPUT_COLUMNS = [COL_ORIGIN, COL_DESTINATION, COL_WEIGHT]

# Columns appended to the Shipments sheet
OUTPUT_SUMMARY_COLUMNS = [
    "CheapestCourier", "CheapestService", "CheapestRate", "Currency",
    "RateCount", "DetailedRateCount", "Error",
]

# Sheets holding one row per quote
RATE_COLUMNS = ["Row", COL_REFERENCE, "courierName",
                "serviceName", "rate", "currency", "expectedDeliveryDate"]
DETAILED_RATE_COLUMNS = [
    "Row", COL_REFERENCE, "_provider", "courier_company_id", "courier_name",
    "total_amount", "estimated_delivery_days", "charged_weight", "zone",
    "status", "cod_charges", "freight_charge", "other_charges", "tax_total",
    "itemized_charges",
]

# Pincodes must stay text in Excel (leading zeros, no "110001.0")
TEXT_COLUMNS = [COL_ORIGIN, COL_DESTINATION, COL_REFERENCE]
