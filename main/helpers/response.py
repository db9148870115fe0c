from django.http import JsonResponse
from django.core.serializers.json import DjangoJSONEncoder


class APIResponse:

    @staticmethod
    def _build(success, message, data=None, errors=None, status_code=200):
        body = {'success': success, 'message': message}
        if data is not None:
            body['data'] = data
        if errors is not None:
            body['errors'] = errors
        return JsonResponse(body, status=status_code, encoder=DjangoJSONEncoder)

    @staticmethod
    def success(data=None, message='Success', status_code=200):
        return APIResponse._build(True, message, data=data, status_code=status_code)

    @staticmethod
    def created(data=None, message='Created successfully'):
        return APIResponse._build(True, message, data=data, status_code=201)

    @staticmethod
    def error(message='An error occurred', errors=None, status_code=400):
        return APIResponse._build(False, message, errors=errors, status_code=status_code)

    @staticmethod
    def validation_error(errors=None, message='Validation failed'):
        return APIResponse._build(False, message, errors=errors or {}, status_code=422)

    @staticmethod
    def not_found(message='Resource not found'):
        return APIResponse._build(False, message, status_code=404)

    @staticmethod
    def unauthorized(message='Authentication required'):
        return APIResponse._build(False, message, status_code=401)

    @staticmethod
    def forbidden(message='You do not have permission to perform this action'):
        return APIResponse._build(False, message, status_code=403)

    @staticmethod
    def from_result(result, data_key=None, created=False):
        """Turn a service result dict into a response, mapping error codes to statuses."""
        if result.get('success'):
            data = result.get(data_key) if data_key else result
            if created:
                return APIResponse.created(data=data, message=result.get('message', 'Created successfully'))
            return APIResponse.success(data=data, message=result.get('message', 'Success'))

        error_code = result.get('error_code')
        if error_code == 'NOT_FOUND':
            return APIResponse.not_found(message=result['message'])
        if error_code == 'VALIDATION_ERROR':
            return APIResponse.validation_error(errors={'detail': result['message']}, message=result['message'])
        return APIResponse.error(message=result.get('message', 'Request failed'))
