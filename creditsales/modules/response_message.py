NOT_FOUND_MESSAGE = "Data not found!"
EXIST_DATA_MESSAGE = "Data already exists!"
SYSTEM_ERROR_MESSAGE = "A system error occurred, please try again!"
FORBIDDEN_ACCESS_MESSAGE = "You do not have access to this resource!"
OBJECT_ID_NOT_VALID_MESSAGE = "ID is not valid!"
DATA_HAS_INSERTED_MESSAGE = "Data has been added!"
DATA_HAS_UPDATED_MESSAGE = "Data has been updated!"
DATA_HAS_DELETED_MESSAGE = "Data has been deleted!"
INVALID_CREDENTIALS_MESSAGE = "Incorrect email or password!"
