from lockbom.extractors import gradle
from lockbom.lockfile.depfile import open_local_dep_file
from lockbom.lockfile.registry import extract_deps
from lockbom.lockfile.registry import find_extractor
from lockbom.models.ecosystem import Ecosystem
from lockbom.models.position import Position

GRADLE_LOCKFILE = '''# This is a Gradle generated file for dependency locking.
# Manual edits can break the build and are not advised.
# This file is expected to be part of source control.
com.google.guava:guava:31.1-jre=compileClasspath,runtimeClasspath
org.junit:junit-bom:5.9.1=testCompileClasspath
broken-line
empty=annotationProcessor
'''

BUILD_GRADLE = '''dependencies {
    implementation 'com.google.guava:guava:31.1-jre'
}
'''


class TestGradleLockfile:
    """Tests for the gradle.lockfile extractor."""

    def test_parse_line(self):
        record = gradle.parse_line('com.google.guava:guava:31.1-jre=compileClasspath,runtimeClasspath')
        assert record.name == 'com.google.guava:guava'
        assert record.version == '31.1-jre'
        assert record.dep_groups == ['compileClasspath', 'runtimeClasspath']
        assert gradle.parse_line('broken-line') is None

    def test_should_extract(self):
        assert gradle.should_extract('/app/gradle.lockfile')
        assert not gradle.should_extract('/app/buildscript-gradle.lockfile')
        assert not gradle.should_extract('/app/build.gradle')
        assert gradle.should_extract_buildscript('/app/buildscript-gradle.lockfile')
        assert not gradle.should_extract_buildscript('/app/gradle.lockfile')

    def test_each_lockfile_has_its_own_extractor(self):
        assert find_extractor('/app/buildscript-gradle.lockfile').id == 'buildscript-gradle.lockfile'
        assert find_extractor('/app/gradle.lockfile').id == 'gradle.lockfile'
        assert find_extractor('/app/gradle.lockfile', enabled=['buildscript-gradle.lockfile']) is None
        assert find_extractor('/app/buildscript-gradle.lockfile', enabled=['gradle.lockfile']) is None

    def test_packages(self, write_file, extract_with):
        path = write_file('gradle.lockfile', GRADLE_LOCKFILE)
        guava, junit = extract_with(gradle.extract, path)

        assert (guava.name, guava.version) == ('com.google.guava:guava', '31.1-jre')
        assert guava.ecosystem == Ecosystem.MAVEN
        assert guava.block_position.line == Position(start=4, end=4)
        assert guava.block_position.column == Position(start=1, end=66)
        assert junit.dep_groups == ['testCompileClasspath']


class TestBuildGradleMatcher:
    """Tests for gradle lockfiles correlated with build.gradle."""

    def test_declared_dependency(self, write_file):
        lockfile_path = write_file('gradle.lockfile', GRADLE_LOCKFILE)
        build_path = write_file('build.gradle', BUILD_GRADLE)

        with open_local_dep_file(lockfile_path) as file:
            guava, junit = extract_deps(file).packages

        assert guava.is_direct
        assert not junit.is_direct
        assert guava.block_position.filename == lockfile_path
        assert guava.sourcefile.block.filename == build_path
        assert guava.sourcefile.block.line == Position(start=2, end=2)
        assert guava.sourcefile.block.column == Position(start=5, end=53)
        assert guava.sourcefile.name.column == Position(start=38, end=43)
        assert guava.sourcefile.version.column == Position(start=44, end=52)

    def test_lockfile_in_gradle_directory(self, write_file):
        lockfile_path = write_file('gradle/gradle.lockfile', GRADLE_LOCKFILE)
        build_path = write_file('build.gradle.kts', 'implementation("com.google.guava:guava:31.1-jre")\n')

        with open_local_dep_file(lockfile_path) as file:
            guava = extract_deps(file).packages[0]

        assert guava.is_direct
        assert guava.sourcefile.block.filename == build_path

    def test_without_build_file(self, write_file):
        with open_local_dep_file(write_file('gradle.lockfile', GRADLE_LOCKFILE)) as file:
            packages = extract_deps(file).packages

        assert not any(p.is_direct for p in packages)
