"""
Application constants.

These values are intentionally not configurable via environment variables.
"""

# SMART launch
LAUNCH_SCOPE = " ".join(
    [
        "openid",
        "fhirUser",
        "launch",
        "launch/patient",
        "patient/Patient.read",
        "patient/Observation.read",
        "patient/Observation.write",
    ]
)
SMART_CONFIGURATION_PATH = "/.well-known/smart-configuration"

# Persisted launch state keys
STORE_KEY_SESSION = "session"
STORE_KEY_ISSUER = "issuer"
STORE_KEY_TOKEN_ENDPOINT = "token_endpoint"
STORE_KEY_LAUNCH_KEY = "launch_key"
STORE_KEY_PREFIX = "smart_vitals"

# FHIR content
FHIR_JSON = "application/fhir+json"
OBSERVATION_CATEGORY_SYSTEM = "http://terminology.hl7.org/CodeSystem/observation-category"
VITAL_SIGNS_CATEGORY = "vital-signs"
LOINC_SYSTEM = "http://loinc.org"
UCUM_SYSTEM = "http://unitsofmeasure.org"

# LOINC codes
LOINC_ORAL_TEMPERATURE = "8331-1"
LOINC_SYSTOLIC_BP = "8480-6"
LOINC_DIASTOLIC_BP = "8462-4"

# Created readings
TEMPERATURE_DISPLAY = "Temperature Oral"
TEMPERATURE_UNIT = "degC"
TEMPERATURE_UCUM_CODE = "Cel"

# Display placeholders
UNKNOWN_OBSERVATION = "Unknown observation"
UNKNOWN_DATE = "Unknown date"
VALUE_NOT_AVAILABLE = "Not available"
BLOOD_PRESSURE_UNIT = "mmHg"
TEMPORARY_ID_PREFIX = "temp-"
