from sqlalchemy import Column, String, DateTime, Float, ForeignKey
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime

Base = declarative_base()

class Student(Base):
    __tablename__ = "students"

    id = Column(String(64), primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    attendance_records = relationship("AttendanceRecord", back_populates="student")

    def __repr__(self):
        return f"<Student id={self.id} name={self.name}>"

class AttendanceRecord(Base):
    __tablename__ = "attendance_records"

    id = Column(String(64), primary_key=True, index=True)
    student_id = Column(String(64), ForeignKey("students.id"), nullable=False, index=True)
    # denormalized name as it was when the record was captured
    student_name = Column(String(255), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
    emotion = Column(String(32), nullable=False)
    confidence = Column(Float, nullable=False)
    session_id = Column(String(64), nullable=False, index=True)

    student = relationship("Student", back_populates="attendance_records")

    def __repr__(self):
        return f"<AttendanceRecord id={self.id} student_id={self.student_id} session_id={self.session_id}>"
