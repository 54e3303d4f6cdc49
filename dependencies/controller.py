from typing import Annotated

from fastapi import Depends, Request

from services.grade_controller import GradeStateController


def get_grade_controller(request: Request) -> GradeStateController:
    # main.create_app() 에서 app.state 에 한 번만 생성해 둔 컨트롤러
    return request.app.state.grade_controller


GradeController = Annotated[GradeStateController, Depends(get_grade_controller)]
