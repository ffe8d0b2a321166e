class AppStatusCode:
    OPERATION_SUCCESSFUL = "101"

    INVALID_INPUT = "200"
    INVALID_AMOUNT = "202"

    DUPLICATE_ADD_ERROR = "300"
    RECORD_NOT_FOUND = "301"
    ADVANCE_COVERS_OBLIGATION = "302"

    OPERATION_FAILED = "400"
    PERSISTENCE_ERROR = "401"
    WRITE_CONFLICT = "402"

    AUTHENTICATION_TOKEN_INVALID = "500"
    AUTHENTICATION_TOKEN_EXPIRED = "501"
    AUTHENTICATION_FORBIDDEN = "502"
